"""Tagged results for rendezvous operations.

Network calls complete with either ``Success(value)`` or
``Failure(kind, message)`` instead of raising, so the pairing session can
branch on the outcome without exception plumbing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

from proxylens.errors import ChannelError

T = TypeVar("T")


class FailureKind(Enum):
    """Why a rendezvous operation did not succeed."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    BAD_STATUS = "bad_status"
    EMPTY_TOKEN = "empty_token"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Success(Generic[T]):
    """Operation completed; ``value`` holds its result."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """Operation failed.

    Attributes:
        kind: Failure category.
        message: Human readable detail (never contains secrets).
        status: HTTP status for BAD_STATUS failures.
    """

    kind: FailureKind
    message: str = ""
    status: int | None = None

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        """Raise the failure as a ChannelError."""
        raise ChannelError(self.kind, self.message)


Result = Union[Success[T], Failure]
