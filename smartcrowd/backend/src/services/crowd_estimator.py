from __future__ import annotations

import asyncio
import contextlib
import inspect
import random
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from loguru import logger

from config import Configuration
from models import CrowdOverrides, CrowdReading, DensityLevel, Spot, decrease_density, increase_density
from services.crowd_cache import CrowdCache

SATURDAY = 5
SUNDAY = 6

UpdateCallback = Callable[[Dict[str, DensityLevel]], Union[None, Awaitable[None]]]


class CrowdEstimator:
    """Simulated crowd density per spot.

    The level starts at the spot's baseline, goes up one step during peak
    hours and again on weekends, then takes an optional random one-step
    nudge. All steps clamp to the ordered scale. Randomness and time both
    come from injectable sources so tests can pin them down.
    """

    def __init__(
        self,
        cfg: Optional[Configuration] = None,
        *,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        cache: Optional[CrowdCache] = None,
    ) -> None:
        self.cfg = cfg or Configuration()
        self.rng = rng or random.Random(self.cfg.random_seed)
        self._clock = clock or datetime.now
        self.cache = cache or CrowdCache(ttl_sec=self.cfg.crowd_cache_ttl_sec, clock=self._clock)

    def compute_density(self, baseline: DensityLevel, now: datetime) -> DensityLevel:
        level = baseline
        if self.cfg.peak_hour_start <= now.hour <= self.cfg.peak_hour_end:
            level = increase_density(level)
        if now.weekday() in (SATURDAY, SUNDAY):
            level = increase_density(level)
        if self.rng.random() < self.cfg.random_adjustment_probability:
            if self.rng.random() < 0.5:
                level = increase_density(level)
            else:
                level = decrease_density(level)
        return level

    def _draw_delay(self) -> float:
        delay = max(self.cfg.estimate_delay_min_sec, 0.0)
        if self.cfg.estimate_delay_jitter_sec > 0:
            delay += self.rng.random() * self.cfg.estimate_delay_jitter_sec
        return delay

    async def estimate(self, spot: Spot) -> DensityLevel:
        delay = self._draw_delay()
        if delay > 0:
            await asyncio.sleep(delay)
        now = self._clock()
        level = self.compute_density(spot.crowd_density, now)
        self.cache.put(spot.id, level, now)
        logger.debug("crowd estimate spot={} baseline={} level={}", spot.id, spot.crowd_density.value, level.value)
        return level

    async def bulk_estimate(self, spots: Sequence[Spot]) -> Dict[str, DensityLevel]:
        if not spots:
            return {}
        levels = await asyncio.gather(*(self.estimate(s) for s in spots))
        return {spot.id: level for spot, level in zip(spots, levels)}

    def get_cached(self, spot_id: str) -> Optional[CrowdReading]:
        return self.cache.get(spot_id)

    def snapshot(self) -> CrowdOverrides:
        return CrowdOverrides.from_readings(self.cache.all())

    async def refresh_subset(self, spots: Sequence[Spot]) -> Dict[str, DensityLevel]:
        """Re-estimate a random subset of spots and return the ones whose level changed."""
        picked = [s for s in spots if self.rng.random() < self.cfg.update_probability]
        if not picked:
            return {}

        previous: Dict[str, DensityLevel] = {}
        for spot in picked:
            cached = self.cache.get(spot.id)
            previous[spot.id] = cached.density if cached else spot.crowd_density

        levels = await self.bulk_estimate(picked)
        return {sid: level for sid, level in levels.items() if level != previous[sid]}

    def start_periodic_updates(
        self,
        spots: Sequence[Spot],
        callback: UpdateCallback,
        interval: Optional[float] = None,
    ) -> "PeriodicUpdates":
        """Must be called from a running event loop."""
        every = interval if interval is not None else self.cfg.update_interval_sec
        handle = PeriodicUpdates(self, list(spots), callback, every)
        logger.info("crowd updates started spots={} interval={}s", len(handle.spots), every)
        return handle


class PeriodicUpdates:
    """Cancel handle for a running periodic refresh."""

    def __init__(self, estimator: CrowdEstimator, spots: List[Spot], callback: UpdateCallback, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.estimator = estimator
        self.spots = spots
        self.callback = callback
        self.interval = interval
        self._cancelled = False
        self._task: asyncio.Task[Any] = asyncio.get_running_loop().create_task(self._run())

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self.interval)
            if self._cancelled:
                break
            updates = await self.estimator.refresh_subset(self.spots)
            if not updates or self._cancelled:
                continue
            try:
                result = self.callback(updates)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.warning(f"crowd update callback failed: {exc}")

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if not self._task.done():
            self._task.cancel()
        logger.info("crowd updates cancelled")

    async def stop(self) -> None:
        """Cancel and wait until the background task has finished."""
        self.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
