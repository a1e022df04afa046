import threading
from typing import Dict, List


class InMemoryDB:
    def __init__(self):
        # token -> Session
        self.sessions: Dict[str, object] = {}

        # token -> time it was deleted; not handed out again while listed
        self.retired_tokens: Dict[str, float] = {}

        # user_id -> User, subject_id -> user_id
        self.users: Dict[str, object] = {}
        self.users_by_subject: Dict[str, str] = {}

        # rate limiting storage: key -> list of timestamps
        self.rate_limit_log: Dict[str, List[float]] = {}

        self.lock = threading.Lock()

    def clear(self) -> None:
        with self.lock:
            self.sessions.clear()
            self.retired_tokens.clear()
            self.users.clear()
            self.users_by_subject.clear()
            self.rate_limit_log.clear()


db = InMemoryDB()
