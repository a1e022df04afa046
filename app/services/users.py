import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from app.db import InMemoryDB, db as default_db


@dataclass(frozen=True)
class User:
    id: str
    subject_id: str
    created_at: datetime


class UserService:
    def __init__(self, database: InMemoryDB | None = None):
        self._db = database if database is not None else default_db

    def find_or_create(self, subject_id: str) -> User:
        """
        Finds an existing user by subject id or creates a new one.
        """
        with self._db.lock:
            user_id = self._db.users_by_subject.get(subject_id)
            if user_id is not None:
                return self._db.users[user_id]

            user = User(id=str(uuid.uuid4()), subject_id=subject_id, created_at=datetime.now(timezone.utc))
            self._db.users[user.id] = user
            self._db.users_by_subject[subject_id] = user.id
            return user

    def get(self, user_id: str) -> User | None:
        with self._db.lock:
            return self._db.users.get(user_id)
