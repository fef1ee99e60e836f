"""
Session context store: per-conversation attributes with a confirmation gate
and idle expiry
"""
import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from ..exceptions import NotFound
from ..models.session import (
    AttributePolicy,
    SessionInfo,
    UserContext,
    UserSession,
    WriteOutcome
)
from ..utils.validators import validate_attribute_name, validate_attribute_value

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionContextStore:
    """
    In-process table of live sessions

    Each session id has its own lock; there is no table-wide lock, so the
    idle sweep never blocks sessions it has not reached. Ended sessions are
    wiped and dropped from the table, never archived.
    """

    def __init__(
        self,
        policy: Optional[AttributePolicy] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.policy = policy or AttributePolicy()
        self.clock = clock
        self._sessions: Dict[str, UserSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def create_session(self, preferred_language: str = "en") -> str:
        """Create a new, empty session and return its id"""
        session_id = uuid.uuid4().hex
        now = self.clock()
        self._locks[session_id] = asyncio.Lock()
        self._sessions[session_id] = UserSession(
            session_id=session_id,
            created_at=now,
            last_activity=now,
            preferred_language=preferred_language
        )
        logger.info(f"Session created: {session_id}")
        return session_id

    async def set_attribute(
        self,
        session_id: str,
        name: str,
        value: Any,
        confirmed: bool = False
    ) -> WriteOutcome:
        """
        Store one declared attribute (last write wins)

        Args:
            session_id: Session identifier
            name: Attribute name
            value: Attribute value; None marks it unknown
            confirmed: Explicit confirmation given by the citizen

        Returns:
            STORED, or REQUIRES_CONFIRMATION when a sensitive attribute was
            written without confirmation (nothing is stored in that case)

        Raises:
            NotFound: if the session does not exist or ended meanwhile
            ValidationError: if the name or value is invalid
        """
        validate_attribute_name(name)
        value = validate_attribute_value(name, value)

        session = self._require(session_id)
        async with self._locks[session_id]:
            # The session may have been ended while we waited for the lock
            if self._sessions.get(session_id) is not session:
                raise NotFound(f"Session not found: {session_id}")

            now = self.clock()
            session.last_activity = now

            if self.policy.is_sensitive(name):
                if not confirmed:
                    logger.info(f"Session {session_id}: confirmation required for {name}")
                    return WriteOutcome.REQUIRES_CONFIRMATION
                session.confirmations[name] = now

            if value is None:
                session.context.attributes.pop(name, None)
            else:
                session.context.attributes[name] = value

        logger.debug(f"Session {session_id}: attribute {name} stored")
        return WriteOutcome.STORED

    # Same operation, overwrite semantics
    update_attribute = set_attribute

    async def get_context(self, session_id: str) -> UserContext:
        """
        Get a copy of the session's declared attributes

        Raises:
            NotFound: if the session does not exist
        """
        session = self._require(session_id)
        session.last_activity = self.clock()
        return UserContext(attributes=dict(session.context.attributes))

    async def get_preferred_language(self, session_id: str) -> str:
        return self._require(session_id).preferred_language

    async def get_session_info(self, session_id: str) -> SessionInfo:
        session = self._require(session_id)
        return SessionInfo(
            session_id=session.session_id,
            preferred_language=session.preferred_language,
            created_at=session.created_at,
            last_activity=session.last_activity,
            confirmed_attributes=sorted(session.confirmations),
            known_attributes=sorted(session.context.attributes)
        )

    async def end_session(self, session_id: str) -> None:
        """
        Irreversibly erase a session's context and confirmations

        Raises:
            NotFound: if the session does not exist
        """
        self._require(session_id)
        await self._end(session_id, reason="ended")

    async def sweep_expired(self, idle_threshold: timedelta) -> int:
        """
        End every session idle for longer than the threshold

        Returns:
            Number of sessions ended
        """
        count = 0
        for session_id in list(self._sessions):
            if await self._end(session_id, reason="expired", idle_threshold=idle_threshold):
                count += 1
        if count:
            logger.info(f"Session sweep ended {count} idle session(s)")
        return count

    async def run_sweeper(self, interval_seconds: float, idle_threshold: timedelta) -> None:
        """Sweep idle sessions forever; cancel the task to stop"""
        logger.info(
            f"Session sweeper started (every {interval_seconds}s, idle threshold {idle_threshold})"
        )
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.sweep_expired(idle_threshold)
            except Exception:
                logger.exception("Session sweep failed; retrying on the next interval")

    def _require(self, session_id: str) -> UserSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFound(f"Session not found: {session_id}")
        return session

    async def _end(
        self,
        session_id: str,
        reason: str,
        idle_threshold: Optional[timedelta] = None
    ) -> bool:
        lock = self._locks.get(session_id)
        if lock is None:
            return False
        async with lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            if idle_threshold is not None and self.clock() - session.last_activity <= idle_threshold:
                return False
            session.wipe()
            del self._sessions[session_id]
            self._locks.pop(session_id, None)
        logger.info(f"Session {reason}: {session_id}")
        return True
