"""Application error taxonomy and the service boundary translator."""

from functools import wraps
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .league_logging import get_logger, metrics

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class AppError(Exception):
    """Typed application error carrying an HTTP-style status code."""

    def __init__(self, message: str, status_code: int = 500,
                 details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        """Structured failure payload."""
        payload: Dict[str, Any] = {
            "success": False,
            "message": self.message,
            "statusCode": self.status_code,
        }
        if self.details:
            payload["errors"] = self.details
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class NotFoundError(AppError):
    """Entity id or composite key does not resolve."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, status_code=404, details=details)


class InvalidInputError(AppError):
    """Malformed, missing or inconsistent input."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, status_code=400, details=details)

    @classmethod
    def from_validation_error(cls, exc: ValidationError, message: str = "Validation failed") -> "InvalidInputError":
        details = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return cls(message, details=details)


class AggregationError(AppError):
    """Unexpected failure while summing or deriving aggregate statistics."""

    def __init__(self, message: str = "Aggregate statistics could not be computed"):
        super().__init__(message, status_code=500)


class StoreError(AppError):
    """Failure reported by the document store collaborator."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message, status_code=status_code)


class ConflictError(StoreError):
    """A write collided with a uniqueness rule of the store."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


def parse_input(model: Type[M], data: Union[M, Mapping[str, Any]]) -> M:
    """Validate caller-supplied data into ``model`` or raise InvalidInputError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError.from_validation_error(e) from e


def service_operation(message: str) -> Callable:
    """Translate failures at a public service boundary.

    Typed application errors pass through unchanged. Store errors and anything
    unexpected are logged with their original message and re-raised as a
    generic ``AppError`` carrying ``message``.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except AppError as e:
                if not isinstance(e, StoreError):
                    raise
                failure: Exception = e
            except Exception as e:
                failure = e

            metrics.increment("service.errors", tags={"operation": func.__qualname__})
            logger.error(
                "Service operation failed",
                operation=func.__qualname__,
                error=str(failure),
                exception_type=type(failure).__name__,
                exc_info=failure,
            )
            raise AppError(message, status_code=500) from failure
        return wrapper
    return decorator
