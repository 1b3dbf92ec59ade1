from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional
import copy
import inspect
import logging
import threading

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import BaseModel

from output_tracker.core.monitoring.prometheus_middleware import (
    set_poller_subscribers,
    track_poller_check,
)
from output_tracker.shared.timezone import PLANT_TZ

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], Any]


class PollerState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"


def _comparable(snapshot: Any) -> Any:
    """Detached plain copy of a snapshot, safe to keep across publishes."""
    if isinstance(snapshot, BaseModel):
        return snapshot.model_dump()
    return copy.deepcopy(snapshot)


class ChangePoller:
    """
    Periodically recomputes a snapshot and publishes it only when it changed.

    The first check always publishes, establishing the baseline. A failed
    check is logged and the next tick runs normally.

    The baseline is a private copy of the last published snapshot, so
    subscribers may keep or modify what they receive.
    """

    JOB_ID = "change-poller"

    def __init__(
        self,
        fetch_snapshot: Callable[[], Awaitable[Any]],
        interval_seconds: float = 30,
    ):
        self._fetch_snapshot = fetch_snapshot
        self.interval_seconds = interval_seconds
        self.state = PollerState.IDLE

        self._last_snapshot: Any = None
        self._has_baseline = False

        self._subscribers: List[Subscriber] = []
        self._subscribers_lock = threading.Lock()

        self._scheduler: Optional[AsyncIOScheduler] = None

    # -------------------------
    # Subscribers
    # -------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback (sync or async). Returns its unsubscribe function."""
        with self._subscribers_lock:
            self._subscribers.append(callback)
            set_poller_subscribers(len(self._subscribers))

        def unsubscribe():
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._subscribers_lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
            set_poller_subscribers(len(self._subscribers))

    @property
    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self._subscribers)

    async def _publish(self, snapshot: Any) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Change subscriber {callback!r} failed: {e}")

    # -------------------------
    # Check
    # -------------------------

    async def check(self) -> bool:
        """
        Run one check.

        Returns:
            bool: True when the snapshot was published.
        """
        self.state = PollerState.CHECKING
        try:
            snapshot = await self._fetch_snapshot()

            current = _comparable(snapshot)
            if self._has_baseline and current == self._last_snapshot:
                track_poller_check("unchanged")
                return False

            # Subscribers get the snapshot itself, the baseline is a private copy
            self._last_snapshot = current
            self._has_baseline = True
            await self._publish(snapshot)
            track_poller_check("emitted")
            logger.debug("Production snapshot changed, published to subscribers")
            return True

        except Exception:
            track_poller_check("error")
            logger.exception("Error polling for changes")
            return False

        finally:
            self.state = PollerState.IDLE

    # -------------------------
    # Timer
    # -------------------------

    def start(self) -> None:
        """Schedule check() every interval_seconds, first run immediately. Needs a running loop."""
        if self._scheduler is not None:
            return
        self._scheduler = AsyncIOScheduler(timezone=PLANT_TZ)
        self._scheduler.add_job(
            self.check,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(PLANT_TZ),
        )
        self._scheduler.start()
        logger.info(f"Change poller started (every {self.interval_seconds}s)")

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Change poller stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None
