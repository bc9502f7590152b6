import argparse
import os
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

DEFAULT_ENV_ARGS_PREFIX = "FIXPROVIDER_"


class Namespace(argparse.Namespace):
    def __getattr__(self, item: str) -> Any:
        return None


class ArgumentParser(argparse.ArgumentParser):
    """
    ArgumentParser that takes the default of every long option from the environment.
    --aws-region is read from FIXPROVIDER_AWS_REGION, list options from FIXPROVIDER_AWS_X
    (space separated) or FIXPROVIDER_AWS_X0, FIXPROVIDER_AWS_X1, ...
    """

    # Last return value of parse_args(). Returns None for any attribute before that.
    args = Namespace()

    def __init__(self, *args: Any, env_args_prefix: str = DEFAULT_ENV_ARGS_PREFIX, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.env_args_prefix = env_args_prefix

    def _env_default(self, action: argparse.Action) -> Any:
        env_name = None
        for option_string in action.option_strings:
            if option_string.startswith("--"):
                env_name = self.env_args_prefix + option_string[2:].replace("-", "_").upper()
                break
        if env_name is None or action.default == argparse.SUPPRESS:
            return None
        if action.nargs not in (0, None):
            if (value := os.environ.get(env_name)) is not None:
                return value.split(" ")
            values = [v for i in range(255) if (v := os.environ.get(env_name + str(i))) is not None]
            return values or None
        return os.environ.get(env_name)

    def parse_known_args(  # type: ignore
        self, args: Optional[Sequence[str]] = None, namespace: Optional[argparse.Namespace] = None
    ) -> Tuple[argparse.Namespace, List[str]]:
        for action in self._actions:
            new_default = self._env_default(action)
            if new_default is not None:
                if callable(action.type):
                    type_goal: Union[type, Callable[[str], Any]] = action.type
                else:
                    type_goal = type(action.default)
                if isinstance(new_default, list):
                    action.default = [convert(n, type_goal) for n in new_default]
                else:
                    action.default = convert(new_default, type_goal)
        ret_args, ret_argv = super().parse_known_args(args=args, namespace=namespace)
        ArgumentParser.args = ret_args  # type: ignore
        return ret_args, ret_argv


def get_arg_parser(
    add_help: bool = True,
    description: str = "fix-provider-aws",
    env_args_prefix: str = DEFAULT_ENV_ARGS_PREFIX,
) -> ArgumentParser:
    return ArgumentParser(description=description, add_help=add_help, env_args_prefix=env_args_prefix)


NoneType = type(None)


def convert(value: Any, type_goal: Union[type, Callable[[str], Any]]) -> Any:
    if type_goal is NoneType:
        return value
    elif isinstance(type_goal, type):
        try:
            if type_goal in (str, int, float, complex):
                return type_goal(value)
            elif type_goal is bool:
                return value.lower() in ("true", "1", "yes")
            else:
                # don't know how to handle this type
                return value
        except ValueError:
            # can not convert value
            return value
    return type_goal(value)
