import time
from fastapi import Request, HTTPException
from app.core.config import settings
from app.db import InMemoryDB, db as default_db

WINDOW_SECONDS = 60


class RateLimiter:
    def __init__(self, database: InMemoryDB | None = None, clock=time.time):
        """
        Sliding one-minute window of login initiations per client IP.
        """
        self._db = database if database is not None else default_db
        self._clock = clock

    def _prune(self, now: float) -> None:
        # Drop clients with no request inside the window; caller holds the lock
        idle = [ip for ip, stamps in self._db.rate_limit_log.items() if not stamps or now - stamps[-1] >= WINDOW_SECONDS]
        for ip in idle:
            del self._db.rate_limit_log[ip]

    def check(self, request: Request):
        """
        check Enforces rate limiting based on client IP
        """
        if not settings.RATE_LIMIT_ENABLED:
            return

        client_ip = request.client.host if request.client else "unknown"
        now = self._clock()

        with self._db.lock:
            self._prune(now)

            # Filter out requests older than 1 minute
            recent = [t for t in self._db.rate_limit_log.get(client_ip, []) if now - t < WINDOW_SECONDS]

            if len(recent) >= settings.MAX_REQUESTS_PER_MINUTE:
                self._db.rate_limit_log[client_ip] = recent
                raise HTTPException(status_code=429, detail="Too many login attempts. Please wait.")

            recent.append(now)
            self._db.rate_limit_log[client_ip] = recent


limiter = RateLimiter()
