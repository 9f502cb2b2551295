"""Admin authentication: bcrypt code check and a single-session token store."""
import asyncio
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import bcrypt

from confdrop.exceptions import AuthError, MalformedCodeError

logger = logging.getLogger(__name__)


def hash_admin_code(code: str, rounds: int = 10) -> str:
    """bcrypt hash suitable for the ADMIN_HASH setting."""
    return bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


class SecretVerifier:
    """Checks a submitted code against the configured bcrypt hash.

    The plaintext code is never stored. Any error during the comparison,
    including a missing or malformed hash, counts as a mismatch.
    """

    def __init__(self, admin_hash: str):
        self._hash = (admin_hash or "").encode("utf-8")
        if not self._hash:
            logger.warning("ADMIN_HASH is not set. Admin login is disabled until it is configured.")

    def verify(self, code: str) -> bool:
        if not self._hash:
            return False
        try:
            return bcrypt.checkpw(code.encode("utf-8"), self._hash)
        except (ValueError, TypeError) as e:
            logger.error(f"Admin code verification failed: {e}")
            return False


@dataclass
class AdminSession:
    token: str
    issued_at: datetime
    invalidated_at: Optional[datetime] = None

    @property
    def active(self) -> bool:
        return self.invalidated_at is None


class SessionStore:
    """Admin sessions keyed by token. At most one session is active at a time.

    Issuing a session invalidates the previous one immediately. Only the
    current and the previous session are remembered. There is no expiry and
    no logout.
    """

    def __init__(self):
        self._sessions: dict[str, AdminSession] = {}
        self._current: Optional[AdminSession] = None

    @property
    def current(self) -> Optional[AdminSession]:
        return self._current

    def get(self, token: str) -> Optional[AdminSession]:
        return self._sessions.get(token)

    def issue(self) -> AdminSession:
        now = datetime.now(timezone.utc)
        if self._current is not None:
            self._current.invalidated_at = now
        session = AdminSession(token=secrets.token_urlsafe(32), issued_at=now)
        # Only the current session and the one it replaced are kept
        self._sessions = {s.token: s for s in (self._current, session) if s is not None}
        self._current = session
        return session

    def is_active(self, token: Optional[str]) -> bool:
        current = self._current
        if not token or current is None or not current.active:
            return False
        return hmac.compare_digest(token.encode("utf-8"), current.token.encode("utf-8"))


class AdminAuthService:
    """Login and authorization on top of a verifier and a session store."""

    def __init__(self, verifier: SecretVerifier, sessions: SessionStore, code_length: int = 14):
        self.verifier = verifier
        self.sessions = sessions
        self.code_length = code_length

    async def login(self, code: Optional[str]) -> AdminSession:
        if not code or len(code) != self.code_length:
            raise MalformedCodeError(f"Invalid code. The code must contain {self.code_length} digits.")

        # bcrypt blocks, run it off the event loop
        valid = await asyncio.to_thread(self.verifier.verify, code)
        if not valid:
            logger.warning("Rejected admin login with an incorrect code")
            raise AuthError("Incorrect code.")

        session = self.sessions.issue()
        logger.info(f"Admin session issued at {session.issued_at.isoformat()}")
        return session

    def authorize(self, token: Optional[str]) -> AdminSession:
        if not self.sessions.is_active(token):
            raise AuthError("Unauthorized. Please log in.")
        return self.sessions.current
