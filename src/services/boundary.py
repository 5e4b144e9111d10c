"""Service boundary: turns raised errors into Result values.

Service methods raise domain errors internally. Wrapping a public coroutine
with @service_boundary guarantees callers always get a Result back:
DomainError subclasses pass through as-is, anything else is logged with its
traceback and reported as a RemoteError.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from domain.model.errors import DomainError, RemoteError
from domain.model.result import Result

logger = logging.getLogger(__name__)

T = TypeVar('T')

UNEXPECTED_ERROR_MESSAGE = "Something went wrong, please try again later"


def service_boundary(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[Result[T]]]]:
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[Result[T]]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Result[T]:
            try:
                return Result.success(await func(*args, **kwargs))
            except DomainError as e:
                logger.info(
                    "Operation rejected",
                    extra={"operation": operation, "errorCode": e.code, "error": e.message},
                )
                return Result.failure(e)
            except Exception:
                logger.exception("Unexpected error", extra={"operation": operation})
                return Result.failure(RemoteError(UNEXPECTED_ERROR_MESSAGE))
        return wrapper
    return decorator
