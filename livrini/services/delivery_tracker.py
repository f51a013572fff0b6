# livrini/services/delivery_tracker.py

"""Simulated live tracking of a delivery along a generated route.

Nothing here reads backend state: the courier marker is advanced
along an interpolated warehouse→destination route over a fixed
wall-clock budget.  Progress is derived from elapsed time divided by
the duration, clamped to ``[0, 1]``.  Elapsed time is measured on a
monotonic clock and accumulates across pauses, so progress never
moves backwards while a simulation is running, paused or resumed.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from livrini.config.settings import Settings
from livrini.services.deliveries import (
    DELIVERED_STEP,
    IN_TRANSIT_STEP,
    SHIPPED_STEP,
)

logger = logging.getLogger("livrini.tracker")

Point = tuple[float, float]


def generate_route(
    start: Point, end: Point, num_points: int | None = None,
) -> list[Point]:
    """Interpolate ``num_points + 1`` points with a slight sine bulge."""
    n = num_points if num_points is not None else Settings.ROUTE_POINTS
    if n < 1:
        raise ValueError("num_points must be >= 1")
    route: list[Point] = []
    for i in range(n + 1):
        t = i / n
        curve = math.sin(t * math.pi) * 0.01
        route.append((
            start[0] + (end[0] - start[0]) * t + curve * 0.5,
            start[1] + (end[1] - start[1]) * t + curve,
        ))
    return route


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class TrackingFrame:
    """Snapshot of the simulation at one instant."""

    progress: float
    percent: int
    eta_minutes: int
    step_index: int
    position: Point
    travelled: list[Point]

    @property
    def done(self) -> bool:
        return self.progress >= 1.0


class TrackingSimulation:
    """Clock-driven courier animation with pause/resume/reset."""

    def __init__(
        self,
        route: list[Point] | None = None,
        duration: float | None = None,
        eta_minutes: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.route = route or generate_route(
            Settings.WAREHOUSE, Settings.DESTINATION
        )
        self.duration = (
            Settings.TRACKING_DURATION if duration is None else duration
        )
        if self.duration <= 0:
            raise ValueError("duration must be positive")
        self.eta_minutes = (
            Settings.TRACKING_ETA_MINUTES if eta_minutes is None else eta_minutes
        )
        self._clock = clock
        self._accumulated: float = 0.0
        self._started_at: float | None = None

    # ── Playback control ─────────────────────────────────

    @property
    def playing(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        if self._started_at is None:
            self._started_at = self._clock()
            logger.debug("Tracking started at %.2fs", self._accumulated)

    resume = start

    def pause(self) -> None:
        if self._started_at is not None:
            self._accumulated += self._clock() - self._started_at
            self._started_at = None
            logger.debug("Tracking paused at %.2fs", self._accumulated)

    def reset(self, autoplay: bool = False) -> None:
        """Back to the warehouse; optionally start again immediately."""
        self._accumulated = 0.0
        self._started_at = self._clock() if autoplay else None
        logger.debug("Tracking reset")

    # ── State ────────────────────────────────────────────

    def elapsed(self) -> float:
        running = 0.0
        if self._started_at is not None:
            running = max(0.0, self._clock() - self._started_at)
        return self._accumulated + running

    def progress(self) -> float:
        return min(max(self.elapsed() / self.duration, 0.0), 1.0)

    def frame(self) -> TrackingFrame:
        t = self.progress()
        if t < 0.1:
            step = SHIPPED_STEP
        elif t < 0.9:
            step = IN_TRANSIT_STEP
        else:
            step = DELIVERED_STEP
        index = math.floor(t * (len(self.route) - 1))
        return TrackingFrame(
            progress=t,
            percent=_round_half_up(t * 100),
            eta_minutes=max(0, _round_half_up((1 - t) * self.eta_minutes)),
            step_index=step,
            position=self.route[index],
            travelled=self.route[: index + 1],
        )

    async def play(
        self,
        on_frame: Callable[[TrackingFrame], None],
        frame_interval: float | None = None,
    ) -> TrackingFrame:
        """Emit frames until arrival or pause.

        Cancelling the task (e.g. when the view is torn down) pauses
        the simulation and propagates the cancellation.
        """
        interval = (
            Settings.FRAME_INTERVAL if frame_interval is None else frame_interval
        )
        self.start()
        try:
            while True:
                frame = self.frame()
                on_frame(frame)
                if frame.done or not self.playing:
                    if frame.done:
                        logger.info("Delivery simulation reached destination")
                    return frame
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            self.pause()
            raise
