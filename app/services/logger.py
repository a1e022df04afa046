# CSV audit trail of API operations, one row per call.
import csv
import os
import threading
import time

from app.core.config import settings

HEADERS = ["timestamp", "event_type", "order_ref", "outcome", "latency_ms"]

_write_lock = threading.Lock()


def log_event(event_type: str, order_ref: str | None, outcome: str, latency_ms: int = 0, log_file: str | None = None):
    path = log_file if log_file is not None else settings.AUDIT_LOG_FILE
    if not path:
        return

    with _write_lock:
        # Initialize CSV with headers if it doesn't exist
        new_file = not os.path.exists(path)
        with open(path, "a", newline="") as f:
            writer = csv.writer(f)
            if new_file:
                writer.writerow(HEADERS)
            writer.writerow([time.time(), event_type, order_ref or "", outcome, latency_ms])
