"""
Token Registry - Operation Results

Every registry operation returns either ``Ok`` carrying its value or ``Err``
carrying an ``ErrorKind`` and a human-readable message.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union


T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure kinds reported by registry operations."""
    INVALID_INPUT = "InvalidInput"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    STORAGE = "StorageFailure"


class RegistryError(Exception):
    """Base registry exception."""

    kind = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(RegistryError):
    """Missing, empty or out-of-range input."""
    kind = ErrorKind.INVALID_INPUT


class NotFoundError(RegistryError):
    """Referenced entity does not exist."""
    kind = ErrorKind.NOT_FOUND


class ConflictError(RegistryError):
    """Uniqueness constraint would be violated."""
    kind = ErrorKind.CONFLICT


class OperationFailedError(RegistryError):
    """Storage layer failed while serving the operation."""
    kind = ErrorKind.STORAGE


_ERROR_TYPES = {
    ErrorKind.INVALID_INPUT: InvalidInputError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.STORAGE: OperationFailedError,
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful operation result."""
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed operation result."""
    kind: ErrorKind
    message: str

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def to_exception(self) -> RegistryError:
        """Build the exception matching this failure kind."""
        return _ERROR_TYPES[self.kind](self.message)

    def unwrap(self) -> Any:
        """Raise the matching ``RegistryError`` subclass."""
        raise self.to_exception()

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


Result = Union[Ok[T], Err]


def invalid_input(message: str) -> Err:
    return Err(ErrorKind.INVALID_INPUT, message)


def not_found(message: str) -> Err:
    return Err(ErrorKind.NOT_FOUND, message)


def conflict(message: str) -> Err:
    return Err(ErrorKind.CONFLICT, message)


def storage_failure(message: str) -> Err:
    return Err(ErrorKind.STORAGE, message)
