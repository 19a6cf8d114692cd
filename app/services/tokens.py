"""Session token lifecycle: issue, verify with sliding refresh, revoke, sweep."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import utcnow
from app.exceptions import AuthenticationFailure
from app.models.token import TOKEN_MAX_LENGTH
from app.security import random_string
from app.services.store import TokenStore

logger = logging.getLogger("account_service")

DEFAULT_TTL = timedelta(days=7)
DEFAULT_SWEEP_INTERVAL = timedelta(hours=1)


class TokenService:
    """Issues and validates opaque bearer tokens with a sliding expiry window.

    A token is valid while ``now - last_used_at <= ttl``. Each successful
    verification moves ``last_used_at`` to now. Expired rows stay in the table
    until revoked or swept, but never verify.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        token_length: int = 32,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.ttl = ttl
        self.token_length = min(token_length, TOKEN_MAX_LENGTH)
        self.clock = clock

    def issue(self, db: Session, user_id: int) -> str:
        """Create and persist a new token for the user."""
        token = random_string(self.token_length)
        TokenStore(db).insert_token(token, user_id, self.clock())
        logger.info("Issued session token for user %s", user_id)
        return token

    def verify(self, db: Session, token: str | None) -> int:
        """Return the owning user id, refreshing last_used_at.

        Raises AuthenticationFailure for blank, unknown or expired tokens.
        """
        if not token:
            raise AuthenticationFailure("Missing token")

        store = TokenStore(db)
        user_id = store.find_owner(token)
        if user_id is None:
            raise AuthenticationFailure("Invalid or expired token")

        # Expiry check and refresh happen in one statement.
        now = self.clock()
        if not store.refresh_token(token, now, now - self.ttl):
            raise AuthenticationFailure("Invalid or expired token")
        return user_id

    def revoke(self, db: Session, token: str | None) -> None:
        """Delete a single token. Unknown tokens are ignored."""
        if not token:
            return
        TokenStore(db).delete_token(token)

    def revoke_all(self, db: Session, user_id: int) -> int:
        """Delete every token owned by the user."""
        deleted = TokenStore(db).delete_tokens_for_user(user_id)
        logger.info("Revoked %d session token(s) for user %s", deleted, user_id)
        return deleted

    def sweep(self, db: Session, ttl: timedelta | None = None) -> int:
        """Delete tokens whose last use is older than the TTL."""
        cutoff = self.clock() - (self.ttl if ttl is None else ttl)
        return TokenStore(db).delete_tokens_older_than(cutoff)


class TokenSweeper:
    """Owned background job that periodically sweeps expired tokens.

    Usage:
        sweeper = TokenSweeper(SessionLocal, get_token_service())
        sweeper.start()
        # ... app runs ...
        sweeper.shutdown()
    """

    JOB_ID = "token_sweep"

    def __init__(
        self,
        session_factory: Callable[[], Session],
        token_service: TokenService,
        interval: timedelta = DEFAULT_SWEEP_INTERVAL,
        ttl: timedelta | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.token_service = token_service
        self.interval = interval
        self.ttl = ttl
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> int:
        """Sweep once. Store errors are logged and retried on the next run."""
        db = self.session_factory()
        try:
            deleted = self.token_service.sweep(db, self.ttl)
        except Exception:
            logger.exception("Token sweep failed, will retry in %s", self.interval)
            db.rollback()
            return 0
        finally:
            db.close()

        if deleted:
            logger.info("Token sweep removed %d expired token(s)", deleted)
        else:
            logger.debug("Token sweep found no expired tokens")
        return deleted

    def start(self) -> None:
        """Start the recurring sweep. Calling start twice is a no-op."""
        if self.running:
            return
        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            func=self.run_once,
            trigger=IntervalTrigger(seconds=int(self.interval.total_seconds())),
            id=self.JOB_ID,
            name="Sweep expired session tokens",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Token sweeper started (interval: %s)", self.interval)

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Token sweeper stopped")


_token_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get singleton token service instance."""
    global _token_service
    if _token_service is None:
        settings = get_settings()
        _token_service = TokenService(
            ttl=timedelta(days=settings.TOKEN_TTL_DAYS),
            token_length=settings.TOKEN_LENGTH,
        )
    return _token_service


def create_token_sweeper(session_factory: Callable[[], Session]) -> TokenSweeper:
    """Build the process sweeper from settings."""
    settings = get_settings()
    return TokenSweeper(
        session_factory,
        get_token_service(),
        interval=timedelta(minutes=settings.TOKEN_SWEEP_INTERVAL_MINUTES),
    )
