"""Stores the latest state per source and publishes changes to observers."""
from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Dict, List, Optional

from ..config import NotifyPolicy
from ..entities import DerivedState, SourceId


logger = logging.getLogger(__name__)

Observer = Callable[[SourceId, DerivedState], None]


class ChangeNotifier:
    """Compare new states with the stored ones and call observers.

    Each source's state is written only by that source's poll job; readers get
    copies. Observers run synchronously on the writer's thread, in
    registration order.
    """

    def __init__(self, policy: NotifyPolicy = NotifyPolicy.CHANGE_ONLY) -> None:
        self.policy = policy
        self._states: Dict[SourceId, DerivedState] = {}
        self._observers: Dict[SourceId, List[Observer]] = {}
        self._lock = RLock()

    def subscribe(self, source_id: SourceId, observer: Observer) -> None:
        if not callable(observer):
            raise TypeError("observer must be callable")
        with self._lock:
            self._observers.setdefault(SourceId(source_id), []).append(observer)

    def unsubscribe(self, source_id: SourceId, observer: Observer) -> None:
        with self._lock:
            observers = self._observers.get(SourceId(source_id), [])
            if observer in observers:
                observers.remove(observer)

    def current(self, source_id: SourceId) -> Optional[DerivedState]:
        with self._lock:
            state = self._states.get(SourceId(source_id))
        return state.copy() if state is not None else None

    def forget(self, source_id: SourceId) -> None:
        with self._lock:
            self._states.pop(SourceId(source_id), None)

    def update(self, source_id: SourceId, state: DerivedState) -> bool:
        """Store ``state`` and notify observers; return whether they were called."""
        source_id = SourceId(source_id)
        with self._lock:
            previous = self._states.get(source_id)
            changed = previous is None or previous != state
            if changed or self.policy is NotifyPolicy.ALWAYS:
                self._states[source_id] = state.copy()
            if not changed and self.policy is NotifyPolicy.CHANGE_ONLY:
                logger.debug("State for %s unchanged (%s)", source_id.value, state.value)
                return False
            observers = list(self._observers.get(source_id, []))

        for observer in observers:
            try:
                observer(source_id, state.copy())
            except Exception:  # noqa: BLE001 - one observer must not starve the rest
                logger.exception("Observer %r failed for %s", observer, source_id.value)
        return True


__all__ = ["ChangeNotifier", "Observer"]
