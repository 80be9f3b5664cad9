"""Bounded waits for network collaborators."""

import asyncio
from typing import Awaitable, TypeVar

T = TypeVar("T")


class OperationTimeoutError(Exception):
    """Raised when an operation does not finish before its deadline."""

    def __init__(self, service: str, timeout: float):
        self.service = service
        self.timeout = timeout
        super().__init__(f"{service} did not respond within {timeout:g}s")


async def run_with_timeout(awaitable: Awaitable[T], timeout: float, service: str) -> T:
    """
    Race an awaitable against a timer.

    Args:
        awaitable: The operation to wait for.
        timeout: Seconds before giving up. The operation is cancelled.
        service: Name used in the error message.

    Returns:
        The result of the operation.

    Raises:
        OperationTimeoutError: If the timer fires first.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(service, timeout) from e
