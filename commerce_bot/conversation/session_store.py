"""
In-memory session store with per-chat locking.

Messages for one chat must be handled strictly one at a time because each
handler reads, mutates and writes the whole session. ``with_lock`` gives
each chat identifier its own asyncio.Lock; different chats never wait on
each other. Locks are reference-counted and dropped once no handler holds
or waits on them, so idle chats do not accumulate.

Sessions live only in process memory. A restart resets every in-flight
conversation to the initial stage.
"""

import copy
import logging
from asyncio import Lock
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from commerce_bot.schemas.session_schema import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _LockEntry:
    lock: Lock
    users: int = 0


class InMemorySessionStore:
    """Session map keyed by chat identifier."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, _LockEntry] = {}

    def get(self, chat_id: str) -> Optional[Session]:
        """Return a deep copy of the stored session, or None for an unseen chat.

        Handlers mutate the copy and commit with ``put``; a handler that
        fails part-way leaves the stored session untouched.
        """
        session = self._sessions.get(chat_id)
        return copy.deepcopy(session) if session is not None else None

    def put(self, chat_id: str, session: Session) -> None:
        if session.chat_id != chat_id:
            raise ValueError(f"Session for {session.chat_id!r} stored under {chat_id!r}")
        self._sessions[chat_id] = copy.deepcopy(session)

    def delete(self, chat_id: str) -> None:
        if self._sessions.pop(chat_id, None) is not None:
            logger.debug("Session cleared for chat %s", chat_id)

    def __contains__(self, chat_id: object) -> bool:
        return chat_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def with_lock(self, chat_id: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` while holding the chat's lock. Waiters are served in arrival order."""
        entry = self._locks.get(chat_id)
        if entry is None:
            entry = self._locks[chat_id] = _LockEntry(lock=Lock())
        entry.users += 1
        try:
            async with entry.lock:
                return await fn()
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[chat_id]

    def active_locks(self) -> int:
        """Number of chats currently holding or waiting on a lock."""
        return len(self._locks)
