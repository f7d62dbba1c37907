"""Live, continuously refreshed lists backed by store subscriptions."""

import logging
from typing import Callable, Generic, Iterator, TypeVar

from watchtalk.errors import StoreError
from watchtalk.messages import DEFAULT_LOCALE, get_message
from watchtalk.store.base import Child, Subscription


logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[list[T]], None]


class LiveList(Generic[T]):
    """The current ordered view of a store location.

    Every emission replaces ``items`` wholesale. ``loading`` is True until
    the first snapshot (or error) arrives. Close the list when its owner
    goes away; closing is idempotent.
    """

    def __init__(
        self,
        transform: Callable[[list[Child]], list[T]],
        error_key: str = "load_discussions",
        locale: str = DEFAULT_LOCALE,
    ):
        self._transform = transform
        self._error_key = error_key
        self._locale = locale
        self._listeners: list[Listener] = []
        self._subscription: Subscription | None = None
        self.items: list[T] = []
        self.loading = True
        self.error: str | None = None
        self.emissions = 0

    @classmethod
    def empty(cls) -> "LiveList[T]":
        """A settled empty list that never touches the store."""
        live: LiveList[T] = cls(lambda children: [])
        live.loading = False
        return live

    def attach(self, subscription: Subscription) -> "LiveList[T]":
        self._subscription = subscription
        return self

    def on_snapshot(self, children: list[Child]) -> None:
        self.items = self._transform(children)
        self.loading = False
        self.error = None
        self.emissions += 1
        for listener in list(self._listeners):
            listener(self.items)

    def on_error(self, exc: StoreError) -> None:
        logger.error(f"Subscription failed: {exc}")
        self.error = get_message(self._error_key, self._locale)
        self.loading = False

    def add_listener(self, listener: Listener) -> None:
        """Call listener with the current items now and on every emission."""
        self._listeners.append(listener)
        if not self.loading:
            listener(self.items)

    @property
    def closed(self) -> bool:
        return self._subscription is None or not self._subscription.active

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
        self._listeners.clear()

    def __iter__(self) -> Iterator[T]:
        return iter(list(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __enter__(self) -> "LiveList[T]":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
