"""Client side of the login flow.

StatusPoller asks the API for the status of one order every interval until
the login completes or fails, or until stop() is called. Countdown tracks the
time the QR code is shown, independent of the server.
"""

import logging
import threading
import time
from typing import Callable, NamedTuple

import requests

from app.core.config import settings

logger = logging.getLogger(__name__)

STOP_STATUSES = frozenset({"complete", "failed"})


class PollResult(NamedTuple):
    status: str
    hint: str | None = None

    @property
    def done(self) -> bool:
        return self.status in STOP_STATUSES


FAILED = PollResult("failed")


class StatusPoller:
    def __init__(
        self,
        order_ref: str,
        base_url: str = "",
        http=None,
        interval: float | None = None,
        on_update: Callable[[PollResult], None] | None = None,
        timeout: float = 5.0,
    ):
        self.order_ref = order_ref
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.interval = interval if interval is not None else settings.POLL_INTERVAL_MS / 1000
        self.on_update = on_update
        self.timeout = timeout
        self.history: list[PollResult] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def poll_once(self) -> PollResult:
        """
        One status request. Anything but a readable 200 answer
        counts as a failed login.
        """
        try:
            resp = self.http.get(
                f"{self.base_url}/auth/status",
                params={"orderRef": self.order_ref},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Status poll failed: order_ref={self.order_ref}: {e}")
            return FAILED

        if resp.status_code != 200:
            logger.warning(f"Status poll rejected: order_ref={self.order_ref} HTTP {resp.status_code}")
            return FAILED

        try:
            data = resp.json()
        except ValueError:
            logger.warning(f"Status poll returned a non-JSON body: order_ref={self.order_ref}")
            return FAILED

        if not isinstance(data, dict):
            logger.warning(f"Status poll returned an unexpected body: order_ref={self.order_ref}")
            return FAILED

        return PollResult(data.get("status", "failed"), data.get("hintCode"))

    def run(self) -> PollResult | None:
        """Polls until a stop status is seen or stop() is called. Returns the last result."""
        while not self._stop.is_set():
            result = self.poll_once()
            self.history.append(result)
            if self.on_update is not None:
                self.on_update(result)
            if result.done:
                self._stop.set()
                return result
            if self._stop.wait(self.interval):
                break
        return self.history[-1] if self.history else None

    def start(self) -> threading.Thread:
        if self._thread is not None:
            raise RuntimeError("Poller already started")
        self._thread = threading.Thread(target=self.run, name=f"poller-{self.order_ref}", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


class Countdown:
    def __init__(self, budget: int | None = None, near_expiry: int | None = None, clock=time.monotonic):
        self.budget = budget if budget is not None else settings.DISPLAY_BUDGET_SECONDS
        self.near_expiry = near_expiry if near_expiry is not None else settings.NEAR_EXPIRY_SECONDS
        self._clock = clock
        self._started = clock()

    def restart(self) -> None:
        self._started = self._clock()

    def remaining(self) -> int:
        return max(0, self.budget - int(self._clock() - self._started))

    @property
    def expired(self) -> bool:
        return self.remaining() == 0

    @property
    def can_restart(self) -> bool:
        # Offered once fewer than near_expiry seconds are left
        return self.remaining() < self.near_expiry
