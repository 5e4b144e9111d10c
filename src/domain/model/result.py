from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from domain.model.errors import DomainError

T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service operation: either a value or a domain error."""
    value: T | None = None
    error: DomainError | None = None

    @staticmethod
    def success(value: T | None = None) -> 'Result[T]':
        return Result(value=value)

    @staticmethod
    def failure(error: DomainError) -> 'Result[T]':
        return Result(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T | None:
        """Return the value, re-raising the error for failed results."""
        if self.error is not None:
            raise self.error
        return self.value
