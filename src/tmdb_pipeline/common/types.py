"""Transport-agnostic publish types shared by both processes."""

import asyncio
from dataclasses import dataclass

__all__ = [
    "PendingPublish",
    "PublishOutcome",
]


@dataclass(frozen=True)
class PendingPublish:
    """
    A submitted message whose delivery has not been awaited yet.

    ``delivery`` resolves to the broker's record metadata, or raises if the
    message could not be delivered.
    """

    topic: str
    size: int
    delivery: asyncio.Future


@dataclass
class PublishOutcome:
    """Success/failure tally for one batch of pending publishes."""

    success_count: int = 0
    failure_count: int = 0

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count
