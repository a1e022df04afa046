import uuid
import logging
from datetime import datetime, timezone
from typing import Callable, NamedTuple, Protocol

from app.core.config import settings
from app.core.errors import Conflict, InvalidInput, NotFound, StoreUnavailable
from app.core.security import create_access_token, is_valid_subject_id, mask_subject_id
from app.services.lifecycle import Status, Thresholds, advance, derive_status
from app.services.qr_service import QRService
from app.services.sessions import InMemorySessionStore, Session, SessionStore
from app.services.users import UserService

"""AuthService: session lifecycle for the BankID login flow (initiate, poll, cancel)"""


# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class Initiated(NamedTuple):
    token: str
    qr_code_url: str


class StatusResult(NamedTuple):
    status: Status
    hint: str | None


def _new_token() -> str:
    return str(uuid.uuid4())


class AuthService:
    def __init__(
        self,
        store: SessionStore | None = None,
        clock: Clock | None = None,
        users: UserService | None = None,
        thresholds: Thresholds | None = None,
        hint_code: str | None = None,
        token_factory: Callable[[], str] = _new_token,
        validator: Callable[[str], bool] = is_valid_subject_id,
        max_create_attempts: int | None = None,
        callback_url: str | None = None,
    ):
        self.store = store if store is not None else InMemorySessionStore()
        self.clock = clock if clock is not None else SystemClock()
        self.users = users if users is not None else UserService()
        self.thresholds = thresholds if thresholds is not None else settings.thresholds()
        self.hint_code = hint_code if hint_code is not None else settings.HINT_CODE
        self.token_factory = token_factory
        self.validator = validator
        self.max_create_attempts = max_create_attempts or settings.MAX_CREATE_ATTEMPTS
        self.callback_url = callback_url

    def initiate(self, subject_id: str) -> Initiated:
        """
        Creates a new pending session for subject_id.
        Returns the token and the URL of the QR image to show.
        """
        if not isinstance(subject_id, str) or not subject_id.strip() or not self.validator(subject_id):
            logger.warning("Login initiation rejected: malformed subject id")
            raise InvalidInput("Malformed personal number")

        for attempt in range(1, self.max_create_attempts + 1):
            token = self.token_factory()
            payload = QRService.build_payload(token, self.callback_url)
            session = Session(
                token=token,
                subject_id=subject_id,
                qr_payload=payload,
                qr_code_url=QRService.image_url(payload),
                created_at=self.clock.now(),
            )
            try:
                self.store.create(session)
            except Conflict:
                logger.warning(f"Token collision on attempt {attempt}/{self.max_create_attempts}, regenerating")
                continue

            logger.info(f"Login Initiated: order_ref={token}, subject={mask_subject_id(subject_id)}")
            return Initiated(token=session.token, qr_code_url=session.qr_code_url)

        logger.error(f"Login initiation failed: no free token after {self.max_create_attempts} attempts")
        raise StoreUnavailable("Could not allocate a session token")

    def poll_status(self, token: str) -> StatusResult:
        """
        Derives the status from the time elapsed since creation and
        advances the stored status. A terminal session is only read.
        """
        session = self._get(token)
        if session.status.terminal:
            return StatusResult(session.status, session.hint)

        now = self.clock.now()

        def _advance(stored: Session) -> None:
            derived = derive_status(now, stored.created_at, self.thresholds)
            stored.set_status(advance(stored.status, derived), self.hint_code)

        previous = session.status
        session = self.store.update(token, _advance)

        if session.status is not previous:
            logger.info(f"Status changed: order_ref={token}, {previous.value} -> {session.status.value}")
            if session.status is Status.COMPLETE:
                session = self._link_user(session)

        return StatusResult(session.status, session.hint)

    def cancel(self, token: str) -> bool:
        session = self._get(token)
        self.store.delete(session)
        logger.info(f"Login Cancelled: order_ref={token}, was {session.status.value}")
        return True

    def issue_token(self, token: str) -> str:
        """
        Issues an access token for a completed login.
        """
        session = self._get(token)
        if session.status is not Status.COMPLETE:
            logger.warning(f"Token request rejected: order_ref={token} status is {session.status.value}")
            raise InvalidInput("Login not yet complete")

        if session.user_id is None:
            session = self._link_user(session)

        return create_access_token(session.user_id, extra={"order_ref": session.token})

    def _get(self, token: str) -> Session:
        if not isinstance(token, str) or not token.strip():
            raise InvalidInput("Missing orderRef")

        session = self.store.get_by_token(token)
        if session is None:
            logger.warning(f"Lookup failed: order_ref={token} not found")
            raise NotFound()
        return session

    def _link_user(self, session: Session) -> Session:
        user = self.users.find_or_create(session.subject_id)

        def _attach(stored: Session) -> None:
            if stored.user_id is None:
                stored.user_id = user.id

        linked = self.store.update(session.token, _attach)
        logger.info(f"Login Complete: order_ref={session.token}, user={linked.user_id}")
        return linked
