"""
Inference scheduler.

Frames arrive far faster than the detector can process them. The scheduler
admits a frame only when

- at least `min_interval` seconds passed since the last admitted frame, and
- no inference cycle is currently running.

Admitted frames run on a single dedicated worker thread; everything else is
dropped immediately, so the producer never blocks. Results are handed to the
consumer callback on a delivery context that is never the worker.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from models.detection import Detection

# Smoothing factor for the throughput moving average.
THROUGHPUT_ALPHA = 0.2


class Admission(Enum):
    ADMITTED = "admitted"
    DROPPED_RATE = "dropped_rate"
    DROPPED_BUSY = "dropped_busy"


@dataclass
class SchedulerStats:
    """Counters for scheduler decisions and cycle outcomes."""
    admitted: int = 0
    dropped_rate: int = 0
    dropped_busy: int = 0
    completed: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return {
            "admitted": self.admitted,
            "dropped_rate": self.dropped_rate,
            "dropped_busy": self.dropped_busy,
            "completed": self.completed,
            "failed": self.failed,
        }


class InferenceScheduler:
    """
    Rate- and concurrency-limited runner for an expensive detection function.

    Example:
        scheduler = InferenceScheduler(detector.detect, on_result=overlay.update)
        for frame in frames:
            scheduler.submit(frame)
        scheduler.close()

    Args:
        work: Called on the worker thread with the submitted frame.
        on_result: Receives each successful cycle's detections.
        min_interval: Minimum seconds between admitted frames.
        clock: Monotonic time source, in seconds.
        deliver: Schedules a zero-argument callable on the consumer's context
            (e.g. an event loop's call_soon_threadsafe). Defaults to a private
            single-thread executor.
    """

    def __init__(
        self,
        work: Callable[[Any], List[Detection]],
        on_result: Callable[[List[Detection]], None],
        min_interval: float = 0.12,
        clock: Callable[[], float] = time.monotonic,
        deliver: Optional[Callable[[Callable[[], None]], Any]] = None,
    ):
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative")
        self._work = work
        self._on_result = on_result
        self.min_interval = min_interval
        self._clock = clock

        self._lock = threading.Lock()
        self._last_invocation: Optional[float] = None
        self._in_flight = False
        self._closed = False

        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference")
        self._delivery: Optional[ThreadPoolExecutor] = None
        if deliver is None:
            self._delivery = ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference-delivery")
            deliver = self._delivery.submit
        self._deliver = deliver

        self.stats = SchedulerStats()
        self._throughput: Optional[float] = None
        self._last_completion: Optional[float] = None

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    @property
    def last_invocation(self) -> Optional[float]:
        with self._lock:
            return self._last_invocation

    def throughput(self) -> Optional[float]:
        """Completed cycles per second (moving average), None until measurable."""
        with self._lock:
            return self._throughput

    def submit(self, frame: Any, now: Optional[float] = None) -> Admission:
        """
        Offer a frame. Returns immediately with the admission decision.

        Raises:
            RuntimeError: If the scheduler was closed.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            if self._closed:
                raise RuntimeError("Scheduler is closed")
            if self._last_invocation is not None and now - self._last_invocation < self.min_interval:
                self.stats.dropped_rate += 1
                return Admission.DROPPED_RATE
            if self._in_flight:
                self.stats.dropped_busy += 1
                return Admission.DROPPED_BUSY

            self._last_invocation = now
            self._in_flight = True
            self.stats.admitted += 1
            future = self._worker.submit(self._work, frame)

        # Outside the lock: the callback runs inline if the future is already done.
        future.add_done_callback(self._on_done)
        return Admission.ADMITTED

    def _on_done(self, future: Future) -> None:
        # Runs on the worker thread (or inline in submit() for a future that is
        # already done). The next cycle cannot start before this returns, so
        # delivery order follows admission order.
        error = future.exception()
        finished = self._clock()

        with self._lock:
            self._in_flight = False
            if error is not None:
                self.stats.failed += 1
            else:
                self.stats.completed += 1
                self._update_throughput(finished)

        if error is not None:
            logging.error(f"Inference cycle failed: {error}", exc_info=error)
            return

        detections = future.result()
        try:
            self._deliver(lambda: self._dispatch(detections))
        except RuntimeError as e:
            logging.debug(f"Dropping result after shutdown: {e}")

    def _dispatch(self, detections: List[Detection]) -> None:
        try:
            self._on_result(detections)
        except Exception as e:
            logging.warning(f"Result callback error: {e}")

    def _update_throughput(self, finished: float) -> None:
        if self._last_completion is not None:
            elapsed = finished - self._last_completion
            if elapsed > 0:
                rate = 1.0 / elapsed
                if self._throughput is None:
                    self._throughput = rate
                else:
                    self._throughput += THROUGHPUT_ALPHA * (rate - self._throughput)
        self._last_completion = finished

    def close(self, wait: bool = True) -> None:
        """Stop admitting frames and shut down the worker and delivery threads."""
        with self._lock:
            self._closed = True
        self._worker.shutdown(wait=wait)
        if self._delivery is not None:
            self._delivery.shutdown(wait=wait)

    def __enter__(self) -> "InferenceScheduler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
