"""Pluggable per-user state stores"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from loguru import logger

from vendor_memory.core.models import UserState


class MemoryStore(ABC):
    """
    Keyed storage for per-user conversation state.

    The manager only ever talks to this interface, so a shared cache can back
    it without touching call sites. Implementations must hand back an object
    that the manager may mutate and then ``set`` again.
    """

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserState]:
        """Return the state for ``user_id`` or None"""

    @abstractmethod
    def set(self, user_id: str, state: UserState) -> None:
        """Insert or replace the state for ``user_id``"""

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        """Remove ``user_id``; True if something was removed"""

    @abstractmethod
    def keys(self) -> list[str]:
        """All tracked user ids"""

    def sweep(self, should_evict: Callable[[str, UserState], bool]) -> list[str]:
        """
        Remove every entry for which ``should_evict`` returns True.

        Returns:
            Evicted user ids
        """
        evicted = []
        for user_id in self.keys():
            state = self.get(user_id)
            if state is not None and should_evict(user_id, state):
                self.delete(user_id)
                evicted.append(user_id)
        return evicted


class InMemoryStore(MemoryStore):
    """Process-local dict store (state lives for the process lifetime)"""

    def __init__(self) -> None:
        self._states: dict[str, UserState] = {}
        logger.debug("InMemoryStore initialized")

    def get(self, user_id: str) -> Optional[UserState]:
        return self._states.get(user_id)

    def set(self, user_id: str, state: UserState) -> None:
        self._states[user_id] = state

    def delete(self, user_id: str) -> bool:
        return self._states.pop(user_id, None) is not None

    def keys(self) -> list[str]:
        return list(self._states.keys())

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._states
