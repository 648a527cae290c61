"""
Synchronous change notification.

Listeners run in subscription order on the caller's thread. A delegate is
not re-entrant: firing it again from inside one of its own listeners raises
ReentrantMutationError.
"""

from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class ReentrantMutationError(RuntimeError):
    """State was mutated from inside a notification about that state."""


class Delegate(Generic[T]):
    """Pub/sub event delegate."""

    def __init__(self, name: str = "event") -> None:
        self.name = name
        self._listeners: list[Callable[[T], None]] = []
        self._firing = False

    @property
    def firing(self) -> bool:
        return self._firing

    def subscribe(self, callback: Callable[[T], None]) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        self._listeners = [cb for cb in self._listeners if cb is not callback]

    def unsubscribe_all(self) -> None:
        self._listeners = []

    def has_listeners(self) -> bool:
        return len(self._listeners) > 0

    def fire(self, arg: T) -> None:
        if self._firing:
            raise ReentrantMutationError(f"{self.name} fired from inside its own listener")

        self._firing = True
        try:
            for listener in list(self._listeners):
                listener(arg)
        finally:
            self._firing = False

    def destroy(self) -> None:
        self._listeners = []
