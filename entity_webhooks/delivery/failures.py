"""Per-URL consecutive failure tracking and blocking.

State machine:
- FRESH: no failures recorded
- DEGRADED: failures recorded, deliveries still attempted
- BLOCKED: threshold reached, deliveries refused until the block expires

Blocks expire lazily: reading a record whose block is older than the
block window yields a fresh record and persists it.
"""

import hashlib
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

DEFAULT_BLOCK_WINDOW_SECONDS = 3600


class FailureState(Enum):
    """Effective failure states of a URL."""

    FRESH = "fresh"
    DEGRADED = "degraded"
    BLOCKED = "blocked"


class FailureRecord(BaseModel):
    """Consecutive failure data for one URL."""

    count: int = Field(
        default=0,
        ge=0,
        description="Consecutive failed deliveries",
    )
    first_failure_at: float = Field(
        default=0.0,
        description="Epoch seconds of the first failure in the current window",
    )
    blocked: bool = Field(
        default=False,
        description="Whether the URL is blocked",
    )
    blocked_at: float = Field(
        default=0.0,
        description="Epoch seconds when the URL was blocked",
    )

    @classmethod
    def fresh(cls, now: float) -> "FailureRecord":
        return cls(count=0, first_failure_at=now, blocked=False, blocked_at=0.0)

    @property
    def state(self) -> FailureState:
        if self.blocked:
            return FailureState.BLOCKED
        if self.count > 0:
            return FailureState.DEGRADED
        return FailureState.FRESH

    def is_block_expired(self, now: float, window: float = DEFAULT_BLOCK_WINDOW_SECONDS) -> bool:
        return self.blocked and now - self.blocked_at > window


@dataclass(frozen=True)
class FailureOutcome:
    """Result of recording a failed delivery.

    Attributes:
        count: Consecutive failure count after this failure (0 when
            tracking is disabled).
        threshold: Threshold in effect.
        newly_blocked: True only for the failure that blocked the URL.
        blocked: Whether the URL is blocked after this failure.
    """

    count: int
    threshold: int
    newly_blocked: bool
    blocked: bool


class FailureTracker:
    """Reads and writes failure records in Redis.

    One record per URL, shared by every webhook that targets that URL.
    """

    def __init__(
        self,
        redis: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "entity_webhooks",
        block_window: int = DEFAULT_BLOCK_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the tracker.

        Args:
            redis: Async Redis client.
            prefix: Key prefix.
            block_window: Block duration and record TTL in seconds.
            clock: Source of epoch seconds.
        """
        self.redis = redis
        self.prefix = prefix
        self.block_window = block_window
        self._clock = clock

    def key_for(self, url: str) -> str:
        return f"{self.prefix}:failures:{hashlib.md5(url.encode()).hexdigest()}"

    async def load(self, url: str) -> FailureRecord:
        """Load the stored record for a URL.

        A missing record is a fresh one. No expiry is applied.
        """
        data = await self.redis.get(self.key_for(url))
        if data is None:
            return FailureRecord.fresh(self._clock())
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            return FailureRecord.model_validate_json(data)
        except ValueError as e:
            logger.warning("failure_record_corrupt", url=url, error=str(e))
            return FailureRecord.fresh(self._clock())

    async def save(self, url: str, record: FailureRecord) -> None:
        """Persist a record with the block-window TTL."""
        await self.redis.setex(self.key_for(url), self.block_window, record.model_dump_json())

    async def get(self, url: str) -> FailureRecord:
        """Load a record, applying lazy block expiry.

        Returns:
            The effective record for the URL.
        """
        record = await self.load(url)
        now = self._clock()
        if record.is_block_expired(now, self.block_window):
            logger.info("url_block_expired", url=url, blocked_at=record.blocked_at)
            record = FailureRecord.fresh(now)
            await self.save(url, record)
        return record

    async def is_blocked(self, url: str) -> bool:
        """Check whether deliveries to a URL are currently refused."""
        record = await self.get(url)
        return record.blocked

    async def record_success(self, url: str) -> None:
        """Reset the URL to a fresh, unblocked record."""
        await self.save(url, FailureRecord.fresh(self._clock()))
        logger.debug("failure_record_reset", url=url)

    async def record_failure(self, url: str, threshold: int) -> FailureOutcome:
        """Record a failed delivery and block the URL at the threshold.

        Args:
            url: Target URL.
            threshold: Consecutive failures that block the URL; 0 disables
                tracking entirely.

        Returns:
            Outcome describing the new state.
        """
        if threshold <= 0:
            return FailureOutcome(count=0, threshold=0, newly_blocked=False, blocked=False)

        now = self._clock()
        record = await self.get(url)
        if record.count == 0:
            record.first_failure_at = now
        record.count += 1

        newly_blocked = False
        if record.count >= threshold and not record.blocked:
            record.blocked = True
            record.blocked_at = now
            newly_blocked = True

        await self.save(url, record)

        logger.warning(
            "failure_recorded",
            url=url,
            failure_count=record.count,
            threshold=threshold,
            blocked=record.blocked,
        )
        if newly_blocked:
            logger.warning(
                "url_blocked",
                url=url,
                failure_count=record.count,
                block_window=self.block_window,
            )

        return FailureOutcome(
            count=record.count,
            threshold=threshold,
            newly_blocked=newly_blocked,
            blocked=record.blocked,
        )

    async def unblock(self, url: str) -> None:
        """Manually clear a URL's failure record."""
        await self.redis.delete(self.key_for(url))
        logger.info("url_unblocked", url=url)
