"""Per-service request throttling for YouTube and OpenAI calls."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Mapping, Optional

from stwipe.config.settings import RateLimitConfig, ServiceRateLimit

YOUTUBE_SERVICE = "youtube"
OPENAI_SERVICE = "openai_api"

DEFAULT_REQUESTS_PER_MINUTE = 60


@dataclass(slots=True)
class ServiceThrottle:
    """Spaces calls ``interval`` seconds apart once ``burst`` back-to-back calls are used up.

    Each call reserves the next free slot on a shared timeline; a caller only sleeps when its slot
    lies further ahead than the burst allowance.
    """

    interval: float
    burst: int = 1
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _next_slot: Optional[float] = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.burst < 1:
            raise ValueError("burst must be at least 1")
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: ServiceRateLimit, **overrides: object) -> "ServiceThrottle":
        per_minute = config.requests_per_minute or DEFAULT_REQUESTS_PER_MINUTE
        return cls(interval=60.0 / per_minute, burst=config.burst or per_minute, **overrides)

    def delay(self, now: float) -> float:
        """Seconds a call made at ``now`` would have to wait."""

        if self._next_slot is None:
            return 0.0
        allowance = (self.burst - 1) * self.interval
        return max(0.0, self._next_slot - allowance - now)

    async def wait_turn(self) -> float:
        """Block until this call may proceed and return how long it waited."""

        async with self._lock:
            now = self.clock()
            waited = self.delay(now)
            if waited:
                await self.sleep(waited)
            slot = now if self._next_slot is None else max(self._next_slot, now)
            self._next_slot = slot + self.interval
            return waited


class RateLimitRegistry:
    """Holds one :class:`ServiceThrottle` per service named in the rate-limit configuration."""

    def __init__(self, configuration: Optional[RateLimitConfig] = None, **throttle_options: object) -> None:
        services = (configuration or RateLimitConfig()).services
        self._throttles: Dict[str, ServiceThrottle] = {
            name: ServiceThrottle.from_config(config, **throttle_options) for name, config in services.items()
        }

    @property
    def throttles(self) -> Mapping[str, ServiceThrottle]:
        return dict(self._throttles)

    async def apply(self, service_name: str) -> float:
        """Wait for ``service_name``'s next slot; unknown services pass straight through."""

        throttle = self._throttles.get(service_name)
        if throttle is None:
            return 0.0
        return await throttle.wait_turn()


__all__ = [
    "DEFAULT_REQUESTS_PER_MINUTE",
    "OPENAI_SERVICE",
    "RateLimitRegistry",
    "ServiceThrottle",
    "YOUTUBE_SERVICE",
]
