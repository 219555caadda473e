from collections import defaultdict
from collections.abc import Callable
from typing import Any

Listener = Callable[..., Any]


class EventEmitter:
    """
    Minimal synchronous event emitter.

    Listeners run in registration order on the emitting call stack. A
    listener registered with ``once`` is removed before it is invoked.
    """

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[tuple[Listener, bool]]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Listener:
        self._listeners[event].append((listener, False))
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        self._listeners[event].append((listener, True))
        return listener

    def remove_listener(self, event: str, listener: Listener) -> None:
        self._listeners[event] = [
            (registered, once) for registered, once in self._listeners[event] if registered is not listener
        ]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        listeners = self._listeners.get(event)
        if not listeners:
            return False

        self._listeners[event] = [(listener, once) for listener, once in listeners if not once]
        for listener, _ in listeners:
            listener(*args)
        return True
