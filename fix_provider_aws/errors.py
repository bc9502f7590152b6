from typing import Any, Dict, Optional


class ProviderError(Exception):
    """
    Base class of all errors raised by resource adapters.
    operation and resource_id are set, when the error is reported by a lifecycle operation.
    """

    def __init__(self, message: str, *, operation: Optional[str] = None, resource_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.resource_id = resource_id

    def __str__(self) -> str:
        if self.operation and self.resource_id:
            return f"{self.operation} ({self.resource_id}): {self.message}"
        elif self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ValidationError(ProviderError):
    pass


class MalformedIdentifierError(ValidationError):
    def __init__(self, identifier: str, message: str) -> None:
        super().__init__(f"unexpected format for ID ({identifier}): {message}")
        self.identifier = identifier


class UpdateNotSupportedError(ValidationError):
    def __init__(self, type_name: str) -> None:
        super().__init__(f"{type_name} can not be updated in place, all attributes force a new resource")
        self.type_name = type_name


class NotFoundError(ProviderError):
    def __init__(self, message: str = "Empty result", last_request: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.last_request = last_request


class TransientError(ProviderError):
    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class PollTimeoutError(ProviderError, TimeoutError):
    def __init__(self, message: str, last_state: Optional[str] = None) -> None:
        super().__init__(message)
        self.last_state = last_state


class FailedStateError(ProviderError):
    def __init__(self, state: str, reason: Optional[str] = None) -> None:
        message = f"entered failure state {state}" if state else "entered failure state"
        super().__init__(f"{message}: {reason}" if reason else message)
        self.state = state
        self.reason = reason


class UnexpectedStateError(FailedStateError):
    def __init__(self, state: str, expected: str) -> None:
        super().__init__(state, f"unexpected state, wanted one of: {expected}")


class PostCreateNotFoundError(ProviderError):
    def __init__(self, type_name: str, resource_id: str) -> None:
        super().__init__("not found after creation", operation=f"reading {type_name}", resource_id=resource_id)


class CreateError(ProviderError):
    pass


class ReadError(ProviderError):
    pass


class UpdateError(ProviderError):
    pass


class DeleteError(ProviderError):
    pass
