"""
Queue-related models for the AlgoVista equation service.

These models support the single-flight queue that serialises every call to
the upstream LLM endpoint.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypedDict, TypeVar

T = TypeVar("T")


@dataclass
class QueuedOperation(Generic[T]):
    """A deferred upstream call waiting for its turn.

    The queue owns the entry from enqueue until its future is settled.
    """

    operation: Callable[[], Awaitable[T]]
    future: asyncio.Future[T]
    operation_name: str = "operation"
    queued_at: float = field(default_factory=time.monotonic)

    @property
    def is_abandoned(self) -> bool:
        """True when the waiting caller has already gone away."""
        return self.future.done()


class QueueStats(TypedDict):
    """Type definition for queue statistics reported by the health endpoint."""

    type: str
    busy: bool
    pending: int
    processed_total: int
    failed_total: int
    skipped_total: int
