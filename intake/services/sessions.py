"""In-memory store of open form sessions with TTL and max-size eviction."""

import logging
import time
from collections import OrderedDict

from intake.services.attachments import PreviewRegistry
from intake.services.orchestrator import FormSession

logger = logging.getLogger(__name__)


class SessionStore:
    """Holds open ``FormSession`` objects keyed by session ID.

    Any session that leaves the store (expired, evicted, or discarded) is
    closed, so its preview handles are released. Sessions that are mid-submit
    are skipped by both expiry and eviction.

    Usage::

        store = SessionStore(ttl=1800, max_size=500)
        session = store.create()
        store.get(session.session_id)  # refreshes its TTL
        store.discard(session.session_id)
    """

    def __init__(
        self,
        ttl: float = 1800,
        max_size: int = 500,
        previews: PreviewRegistry | None = None,
    ) -> None:
        self._ttl = ttl
        self._max_size = max_size
        self.previews = previews if previews is not None else PreviewRegistry()
        # OrderedDict preserves access order for LRU eviction
        self._store: OrderedDict[str, tuple[FormSession, float]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._store)

    def create(self) -> FormSession:
        session = FormSession(previews=self.previews)
        self.add(session)
        return session

    def add(self, session: FormSession) -> None:
        self._store[session.session_id] = (session, time.time())
        self._store.move_to_end(session.session_id)
        while len(self._store) > self._max_size:
            # Oldest idle session goes; a store full of in-flight submits may overflow
            victim = next(
                (sid for sid, (s, _ts) in self._store.items() if not s.is_busy), None
            )
            if victim is None:
                logger.warning(
                    "Form session store over capacity (%d), all sessions busy",
                    len(self._store),
                )
                break
            evicted, _ts = self._store.pop(victim)
            logger.info("Evicting form session %s (store full)", evicted.session_id)
            evicted.close()

    def get(self, session_id: str) -> FormSession | None:
        """Return the live session, or None if missing or expired.

        A session with a submission in flight never expires.
        """
        entry = self._store.get(session_id)
        if entry is None:
            return None
        session, ts = entry
        now = time.time()
        if now - ts > self._ttl and not session.is_busy:
            self.discard(session_id)
            return None
        self._store[session_id] = (session, now)
        self._store.move_to_end(session_id)
        return session

    def discard(self, session_id: str) -> bool:
        entry = self._store.pop(session_id, None)
        if entry is None:
            return False
        entry[0].close()
        return True

    def clear(self) -> None:
        for session, _ts in self._store.values():
            session.close()
        self._store.clear()
