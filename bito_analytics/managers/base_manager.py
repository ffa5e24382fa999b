"""Base manager class for Bito analytics managers."""

from __future__ import annotations

from abc import ABC
from collections import defaultdict
import threading
from typing import TYPE_CHECKING, Any

from .. import const

if TYPE_CHECKING:
    from collections.abc import Callable


def get_event_signal(instance_id: str, suffix: str) -> str:
    """Build an instance-scoped signal name.

    Example:
        get_event_signal("workspace-1", "progress_updated")
        -> "bito_analytics_workspace-1_progress_updated"
    """
    return f"{__package__.split('.')[0]}_{instance_id}_{suffix}"


class Dispatcher:
    """Synchronous in-process signal dispatcher.

    Listeners are called in subscription order on the emitting thread.
    """

    def __init__(self) -> None:
        """Initialize an empty dispatcher."""
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Callable[[dict[str, Any]], Any]]] = (
            defaultdict(list)
        )

    def connect(
        self, signal: str, callback: Callable[[dict[str, Any]], Any]
    ) -> Callable[[], None]:
        """Subscribe to a signal. Returns an unsubscribe function."""
        with self._lock:
            self._listeners[signal].append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners.get(signal, []):
                    self._listeners[signal].remove(callback)

        return _unsubscribe

    def send(self, signal: str, payload: dict[str, Any]) -> None:
        """Deliver a payload to every listener of a signal."""
        with self._lock:
            listeners = list(self._listeners.get(signal, []))
        for callback in listeners:
            callback(payload)


class BaseManager(ABC):
    """Base class for all Bito analytics managers with scoped event support.

    Provides:
    - Instance-scoped event emitting (emit)
    - Instance-scoped event listening (listen)
    - Cleanup of every subscription via close()
    """

    def __init__(
        self, instance_id: str, dispatcher: Dispatcher | None = None
    ) -> None:
        """Initialize manager.

        Args:
            instance_id: Scope of emitted events (e.g., a workspace id)
            dispatcher: Shared dispatcher; a private one is created if omitted
        """
        self.instance_id = instance_id
        self.dispatcher = dispatcher or Dispatcher()
        self._unsubscribers: list[Callable[[], None]] = []

    def emit(self, suffix: str, **payload: Any) -> None:
        """Emit instance-scoped event to listeners.

        Args:
            suffix: Signal suffix constant (e.g., const.SIGNAL_SUFFIX_PROGRESS_UPDATED)
            **payload: Event data dict passed to listeners

        Example:
            self.emit(
                const.SIGNAL_SUFFIX_MILESTONE_REACHED,
                challenge_id=challenge_id,
                user_id=user_id,
                milestone_value=7,
            )
        """
        signal = get_event_signal(self.instance_id, suffix)
        const.LOGGER.debug(
            "Emitting event '%s' for instance %s with payload keys: %s",
            suffix,
            self.instance_id,
            list(payload.keys()),
        )
        self.dispatcher.send(signal, payload)

    def listen(self, suffix: str, callback: Callable[[dict[str, Any]], Any]) -> None:
        """Subscribe to instance-scoped event; undone by close().

        Args:
            suffix: Signal suffix constant to listen for
            callback: Function called when event fires (receives payload dict)
        """
        signal = get_event_signal(self.instance_id, suffix)
        self._unsubscribers.append(self.dispatcher.connect(signal, callback))
        const.LOGGER.debug(
            "Manager %s listening to event '%s' for instance %s",
            self.__class__.__name__,
            suffix,
            self.instance_id,
        )

    def close(self) -> None:
        """Remove every subscription made through listen()."""
        while self._unsubscribers:
            self._unsubscribers.pop()()
