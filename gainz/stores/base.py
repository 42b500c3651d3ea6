import functools
import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[["Store"], None]


def synchronized(method):
    """Run a store action while holding the store's lock.

    Routes run in a thread pool, so read-modify-write actions on shared
    state must not interleave.
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)

    return wrapper


class Store:
    """Observable state container.

    Public attributes are the state. Mutate them through `set_state` so
    subscribers hear about it. Stores that call into each other share one
    `lock` (see `AppState`).
    """

    def __init__(self):
        self._listeners: list[Listener] = []
        self.lock = threading.RLock()

    @synchronized
    def set_state(self, **changes: Any) -> None:
        for name, value in changes.items():
            if not hasattr(self, name):
                raise AttributeError(f"{type(self).__name__} has no state {name!r}")
            setattr(self, name, value)
        for listener in list(self._listeners):
            listener(self)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self.lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self.lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
