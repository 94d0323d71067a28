"""
client/observable.py -- Minimal reactive values for client state.

Observable holds one value with a single writer (set). Derived computes its
value from one or more sources with a pure function and recomputes whenever
a source publishes; it has no setter of its own.

Subscribers are called synchronously, on the publishing thread, after the
new value is in place. subscribe() returns a callable that removes the
subscription.
"""

import threading
from typing import Any, Callable, Generic, Sequence, TypeVar, Union

T = TypeVar("T")

Subscriber = Callable[[Any], None]


class _Readable(Generic[T]):
    def __init__(self, value: T) -> None:
        self._value = value
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call callback(value) after every publish. Returns the unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, value: T) -> None:
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(value)


class Observable(_Readable[T]):
    def set(self, value: T) -> None:
        """Replace the value and notify every subscriber."""
        self._publish(value)


class Derived(_Readable[T]):
    """Read-only value computed from other observables.

    Derived(search, lambda text: text.lower())
    Derived([selection, search], filter_items)
    """

    def __init__(self, sources: Union[_Readable, Sequence[_Readable]], fn: Callable[..., T]) -> None:
        self._sources = [sources] if isinstance(sources, _Readable) else list(sources)
        self._fn = fn
        super().__init__(self._compute())
        self._unsubscribes = [source.subscribe(self._on_source_change) for source in self._sources]

    def _compute(self) -> T:
        return self._fn(*(source.value for source in self._sources))

    def _on_source_change(self, _value: Any) -> None:
        self._publish(self._compute())

    def dispose(self) -> None:
        """Stop following the sources."""
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []
