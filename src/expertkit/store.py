"""Keyed store of consultation sessions shared between concurrent callers."""

from __future__ import annotations

import contextlib
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

from loguru import logger
from pydantic import validate_call

from expertkit import consultation
from expertkit.config import ExpertKitSettings
from expertkit.consultation import ConsultationOutcome, ConsultationSession, InvalidAnswer, SessionId, new_session_id
from expertkit.exceptions import SessionBusyError, SessionNotFoundError
from expertkit.logging import CONSULT_LEVEL
from expertkit.tree.models import AttributeDef, TreeNode

@dataclass
class _Entry:
    """A stored session with its own lock and last-use time."""

    session: ConsultationSession
    lock: threading.Lock
    touched_at: float


class ConsultationStore:
    """Sessions keyed by identifier, safe to use from several threads.

    A store-wide lock guards the mapping itself. Each session also has its own
    lock, so answers to the same session are applied one at a time while
    different sessions never wait on each other. Sessions idle for longer than
    `session_ttl_seconds` are evicted when the store is next used.

    Examples:
        >>> from expertkit.tree.models import AttributeDef, LeafReason, TreeNode
        >>> store = ConsultationStore()
        >>> session = store.start(TreeNode.leaf("beach", LeafReason.PURE), [])
        >>> session.session_id in store
        True
        >>> len(store)
        1
        >>> store.evict(session.session_id)
        True
        >>> len(store)
        0
    """

    def __init__(
        self,
        *,
        settings: ExpertKitSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the ConsultationStore.

        Args:
            settings (ExpertKitSettings | None): Expiry and lock timeout
                settings. Defaults to `ExpertKitSettings()`.
            clock (Callable[[], float]): Monotonic time source in seconds.
        """
        settings = settings or ExpertKitSettings()
        self._ttl_seconds = settings.session_ttl_seconds
        self._lock_timeout = settings.session_lock_timeout
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        """Return the number of stored sessions, expired or not.

        Returns:
            int: The count of stored sessions.
        """
        with self._lock:
            return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        """Check if a session is stored and not expired.

        Args:
            session_id (object): The identifier to check.

        Returns:
            bool: True if the session is stored and still live.
        """
        with self._lock:
            entry = self._entries.get(session_id) if isinstance(session_id, str) else None
            return entry is not None and not self._is_expired(entry, self._clock())

    def __repr__(self) -> str:
        """Return repr(self).

        Returns:
            str: String representation of the ConsultationStore.
        """
        session_ids = ", ".join(f"'{session_id}'" for session_id in self.session_ids)
        return f"ConsultationStore(sessions=[{session_ids}])"

    @property
    def session_ids(self) -> tuple[str, ...]:
        """tuple[str, ...]: Identifiers of all stored sessions, oldest first."""
        with self._lock:
            return tuple(self._entries)

    def start(
        self,
        tree: TreeNode,
        attributes: Sequence[AttributeDef],
        *,
        name: str = "",
    ) -> ConsultationSession:
        """Start a consultation and store it under a fresh identifier.

        Args:
            tree (TreeNode): Root of a trained tree, shared read-only.
            attributes (Sequence[AttributeDef]): Attribute definitions the tree was trained on.
            name (str): Optional human-readable name for the session.

        Returns:
            ConsultationSession: The new session. Like `get`, this is a copy: advance the
                session through `answer`, never by answering the copy directly.

        Raises:
            RuntimeError: If no unused identifier could be generated.
        """
        self.evict_expired()
        with self._lock:
            session_id = new_session_id(taken=self._entries)
            session = consultation.start_consultation(tree, attributes, session_id=session_id, name=name)
            self._entries[session_id] = _Entry(session=session, lock=threading.Lock(), touched_at=self._clock())
        return session.snapshot()

    @validate_call
    def get(self, session_id: SessionId) -> ConsultationSession:
        """Get a copy of a stored session's current state.

        The copy is taken under the session's lock, so it never shows an answer
        half applied. Changing or answering the copy leaves the stored session as it is.

        Args:
            session_id (SessionId): The session identifier.

        Returns:
            ConsultationSession: A snapshot of the session.

        Raises:
            SessionNotFoundError: If the session is unknown or has expired.
            SessionBusyError: If the session stays locked past the lock timeout.
        """
        entry = self._entry(session_id)
        with self._session_lock(entry):
            return entry.session.snapshot()

    @validate_call
    def answer(self, session_id: SessionId, raw_answer: str, *, strict: bool = False) -> ConsultationOutcome:
        """Answer the pending question of a stored session.

        Args:
            session_id (SessionId): The session identifier.
            raw_answer (str): The answer as typed.
            strict (bool): Raise instead of returning an `InvalidAnswer`.

        Returns:
            ConsultationOutcome: The next question, the conclusion, or an
                `InvalidAnswer` (only when `strict` is False).

        Raises:
            SessionNotFoundError: If the session is unknown or has expired.
            SessionBusyError: If another answer holds the session longer than
                the configured lock timeout.
            InvalidAnswerError: If `strict` is True and the answer is rejected.
        """
        entry = self._entry(session_id)
        with self._session_lock(entry):
            outcome = consultation.answer(entry.session, raw_answer)
            entry.touched_at = self._clock()

        if strict and isinstance(outcome, InvalidAnswer):
            raise outcome.to_exception()
        return outcome

    @validate_call
    def explain_why(self, session_id: SessionId) -> str:
        """Explain why the pending question of a stored session is asked.

        Args:
            session_id (SessionId): The session identifier.

        Returns:
            str: The WHY narrative.

        Raises:
            SessionNotFoundError: If the session is unknown or has expired.
            SessionBusyError: If the session stays locked past the lock timeout.
            ConsultationStateError: If the session is already complete.
        """
        entry = self._entry(session_id)
        with self._session_lock(entry):
            entry.touched_at = self._clock()
            return consultation.explain_why(entry.session)

    @validate_call
    def explain_how(self, session_id: SessionId) -> str:
        """Explain how a stored session reached its conclusion.

        Args:
            session_id (SessionId): The session identifier.

        Returns:
            str: The HOW narrative.

        Raises:
            SessionNotFoundError: If the session is unknown or has expired.
            SessionBusyError: If the session stays locked past the lock timeout.
            ConsultationStateError: If the session has not reached a conclusion.
        """
        entry = self._entry(session_id)
        with self._session_lock(entry):
            entry.touched_at = self._clock()
            return consultation.explain_how(entry.session)

    @validate_call
    def evict(self, session_id: SessionId) -> bool:
        """Remove a session from the store.

        Args:
            session_id (SessionId): The session identifier.

        Returns:
            bool: True if a session was removed, False if none was stored.
        """
        with self._lock:
            removed = self._entries.pop(session_id, None) is not None
        if removed:
            logger.log(CONSULT_LEVEL, "Consultation evicted", session_id=session_id)
        return removed

    def evict_expired(self) -> int:
        """Remove every session idle for longer than the configured TTL.

        Returns:
            int: The number of sessions removed.
        """
        with self._lock:
            now = self._clock()
            expired = [session_id for session_id, entry in self._entries.items() if self._is_expired(entry, now)]
            for session_id in expired:
                del self._entries[session_id]
        if expired:
            logger.debug("Expired consultations evicted", count=len(expired), session_ids=expired)
        return len(expired)

    # ----- Private helpers -----

    def _entry(self, session_id: str) -> _Entry:
        """Look up a live entry, evicting it if it has expired.

        Args:
            session_id (str): The session identifier.

        Returns:
            _Entry: The stored entry.

        Raises:
            SessionNotFoundError: If the session is unknown or has expired.
        """
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            if self._is_expired(entry, self._clock()):
                del self._entries[session_id]
                raise SessionNotFoundError(session_id)
            return entry

    @contextlib.contextmanager
    def _session_lock(self, entry: _Entry) -> Iterator[None]:
        """Hold an entry's lock for the duration of a `with` block.

        Args:
            entry (_Entry): The entry to lock.

        Yields:
            None: Control while the lock is held.

        Raises:
            SessionBusyError: If the lock could not be acquired within the
                configured timeout.
        """
        timeout = -1 if self._lock_timeout is None else self._lock_timeout
        if not entry.lock.acquire(timeout=timeout):
            raise SessionBusyError(entry.session.session_id)
        try:
            yield
        finally:
            entry.lock.release()

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        """Check whether an entry has been idle for longer than the TTL."""
        return self._ttl_seconds is not None and now - entry.touched_at > self._ttl_seconds

