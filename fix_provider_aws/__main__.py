import json
import sys
from typing import Any, Dict, List, Optional

from fix_provider_aws import __version__
from fix_provider_aws.args import ArgumentParser, get_arg_parser
from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.configuration import AwsConfig
from fix_provider_aws.errors import ProviderError
from fix_provider_aws.logger import log, setup_logger
from fix_provider_aws.registry import ProviderRegistry, default_registry
from fix_provider_aws.resource.base import ResourceState
from fix_provider_aws.types import Json


def add_args(arg_parser: ArgumentParser) -> None:
    arg_parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    arg_parser.add_argument(
        "--aws-config", help="Path to a json file with the AWS configuration", dest="aws_config", default=None
    )
    arg_parser.add_argument("--aws-account", help="AWS account id", dest="aws_account", default=None)
    arg_parser.add_argument("--aws-role", help="IAM role to assume in the account", dest="aws_role", default=None)
    arg_parser.add_argument("--aws-profile", help="AWS profile name", dest="aws_profile", default=None)
    arg_parser.add_argument("--aws-region", help="AWS region", dest="aws_region", default=None)
    arg_parser.add_argument(
        "--aws-endpoint",
        help="Custom endpoint per service: <service>=<url>",
        dest="aws_endpoint",
        nargs="+",
        type=str,
        default=None,
    )
    arg_parser.add_argument(
        "--verbose", "-v", help="Verbose logging", dest="verbose", action="store_true", default=False
    )
    arg_parser.add_argument("--quiet", help="Only log errors", dest="quiet", action="store_true", default=False)
    arg_parser.add_argument("--trace", help="Trace logging", dest="trace", action="store_true", default=False)
    arg_parser.add_argument(
        "--log-text", help="Log plain text instead of json", dest="log_text", action="store_true", default=False
    )

    commands = arg_parser.add_subparsers(dest="command", metavar="command")
    commands.required = True
    commands.add_parser("list", help="List all resource and data source types")
    schema = commands.add_parser("schema", help="Show the attribute schema of a type")
    schema.add_argument("type_name")
    schema.add_argument("--data-source", dest="data_source", action="store_true", default=False)
    commands.add_parser("permissions", help="List the IAM permissions required by all resources")
    create = commands.add_parser("create", help="Create a resource from a json configuration")
    create.add_argument("type_name")
    create.add_argument("--config", dest="config", required=True, help="Path to the json configuration (- for stdin)")
    update = commands.add_parser("update", help="Update a resource in place")
    update.add_argument("type_name")
    update.add_argument("id")
    update.add_argument("--config", dest="config", required=True, help="Path to the json configuration (- for stdin)")
    for name, description in [
        ("read", "Read the current state of a resource"),
        ("delete", "Delete a resource"),
        ("import", "Import an existing resource by its identifier"),
    ]:
        cmd = commands.add_parser(name, help=description)
        cmd.add_argument("type_name")
        cmd.add_argument("id")
    lookup = commands.add_parser("lookup", help="Read a data source")
    lookup.add_argument("type_name")
    lookup.add_argument("--config", dest="config", required=True, help="Path to the json arguments (- for stdin)")


def load_json(path: str) -> Json:
    if path == "-":
        return json.load(sys.stdin)  # type: ignore
    with open(path, encoding="utf-8") as f:
        return json.load(f)  # type: ignore


def aws_config_from_args(args: Any) -> AwsConfig:
    js: Json = load_json(args.aws_config) if args.aws_config else {}
    overrides: Dict[str, Any] = {
        "account": args.aws_account,
        "role": args.aws_role,
        "profile": args.aws_profile,
        "region": args.aws_region,
    }
    js.update({k: v for k, v in overrides.items() if v is not None})
    if args.aws_endpoint:
        endpoints = dict(js.get("endpoints") or {})
        for endpoint in args.aws_endpoint:
            service, _, url = endpoint.partition("=")
            endpoints[service] = url
        js["endpoints"] = endpoints
    return AwsConfig.from_json(js)


def state_json(state: ResourceState) -> Json:
    return {"id": state.id, "attributes": state.attributes}


def run(args: Any, registry: ProviderRegistry, client: AwsClient) -> Any:
    command = args.command
    if command == "list":
        return {"resources": sorted(registry.resources), "data_sources": sorted(registry.data_sources)}
    elif command == "schema":
        clazz: Any = registry.data_source(args.type_name) if args.data_source else registry.resource(args.type_name)
        return {name: attr.to_json() for name, attr in clazz.schema().items()}
    elif command == "permissions":
        return registry.called_apis()
    elif command == "lookup":
        return registry.data_source(args.type_name)(client).read(load_json(args.config))

    adapter = registry.resource(args.type_name)(client)
    if command == "create":
        return state_json(adapter.create(load_json(args.config)))
    elif command == "read":
        return state_json(adapter.read(ResourceState(id=args.id)))
    elif command == "update":
        current = adapter.import_state(args.id)
        return state_json(adapter.update(current, load_json(args.config)))
    elif command == "delete":
        return state_json(adapter.delete(ResourceState(id=args.id)))
    elif command == "import":
        return state_json(adapter.import_state(args.id))
    raise ValueError(f"Unknown command: {command}")


def main(argv: Optional[List[str]] = None) -> int:
    arg_parser = get_arg_parser(description="Manage AWS resources from declarative json configuration.")
    add_args(arg_parser)
    args = arg_parser.parse_args(argv)
    setup_logger(
        "fix-provider-aws", verbose=args.verbose, quiet=args.quiet, trace=args.trace, json_format=not args.log_text
    )
    try:
        config = aws_config_from_args(args)
        result = run(args, default_registry(), AwsClient(config))
    except ProviderError as e:
        log.error(str(e))
        return 1
    except (OSError, ValueError) as e:
        log.error(f"Can not run {args.command}: {e}")
        return 2
    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
