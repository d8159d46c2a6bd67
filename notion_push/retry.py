"""
Bounded retry for whole-file pushes.

retry() never raises for a failed operation; it returns a Failure so a
batch caller can collect failures without try/except around each file.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar, Union

from rich.console import Console

console = Console()

T = TypeVar("T")


@dataclass
class Success(Generic[T]):
    """The operation completed and returned value."""

    value: T
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return True


@dataclass
class Failure:
    """Every attempt failed; message is the last error's message."""

    message: str
    attempts: int
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return False


async def retry(operation: Callable[[], Awaitable[T]], tries: int = 2) -> Union[Success[T], Failure]:
    """
    Run an async operation up to `tries` times, one attempt after another.

    Args:
        operation: Zero-argument coroutine function.
        tries: Maximum number of attempts.

    Returns:
        Success with the first result, or Failure carrying the last error.
    """
    if tries < 1:
        raise ValueError(f"tries must be at least 1, got {tries}")

    last_error: Optional[Exception] = None

    for attempt in range(1, tries + 1):
        try:
            value = await operation()
            return Success(value=value, attempts=attempt)
        except Exception as e:
            last_error = e
            console.print(f"[yellow]Attempt {attempt}/{tries} failed: {e}[/yellow]")

    return Failure(message=str(last_error), attempts=tries, error=last_error)
