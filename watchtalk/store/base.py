"""Abstract base class for the hierarchical realtime store."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from watchtalk.errors import StoreError
from watchtalk.store.push_id import generate_push_id


logger = logging.getLogger(__name__)


# A child of a queried location: (key, value)
Child = tuple[str, Any]

SnapshotCallback = Callable[[list[Child]], None]
ErrorCallback = Callable[[StoreError], None]


@dataclass(frozen=True)
class Increment:
    """Server-side numeric delta usable as a value in ``Store.update``.

    A missing or non-numeric current value counts as 0.
    """
    delta: int | float


def split_path(path: str) -> list[str]:
    """Split a slash-separated path into its segments."""
    return [part for part in path.split("/") if part]


def is_related(a: list[str], b: list[str]) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class Subscription:
    """Handle for a continuous ordered subscription.

    Every delivery is the full current child list of the location, never
    a diff. Closing is idempotent.
    """

    def __init__(
        self,
        store: "Store",
        path: str,
        callback: SnapshotCallback,
        order_by: str | None = None,
        equal_to: Any = None,
        limit_to_last: int | None = None,
        on_error: ErrorCallback | None = None,
    ):
        self.store = store
        self.path = path
        self.parts = split_path(path)
        self.callback = callback
        self.order_by = order_by
        self.equal_to = equal_to
        self.limit_to_last = limit_to_last
        self.on_error = on_error
        self.active = True

    def deliver(self) -> None:
        """Push the current snapshot to the callback."""
        if not self.active:
            return
        try:
            children = self.store.query(
                self.path,
                order_by=self.order_by,
                equal_to=self.equal_to,
                limit_to_last=self.limit_to_last,
            )
        except StoreError as e:
            if self.on_error is not None:
                self.on_error(e)
            return
        try:
            self.callback(children)
        except Exception as e:
            # Runs on the writer's thread; the write has already been applied
            logger.error(f"Error in subscriber of {self.path}: {e}")

    def close(self) -> None:
        if self.active:
            self.active = False
            self.store.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class Store(ABC):
    """Hierarchical key-value store addressed by slash-separated paths."""

    # Reads
    @abstractmethod
    def get(self, path: str) -> Any | None:
        """Point read. Returns a copy of the value, or None if absent."""
        pass

    @abstractmethod
    def query(
        self,
        path: str,
        order_by: str | None = None,
        equal_to: Any = None,
        limit_to_last: int | None = None,
    ) -> list[Child]:
        """List the children of a location.

        Children are ordered by the ``order_by`` child field (by key when
        None), optionally restricted to those whose field equals
        ``equal_to``, and optionally cut to the last ``limit_to_last``.
        """
        pass

    # Writes
    @abstractmethod
    def set(self, path: str, value: Any) -> None:
        """Replace the value at path. None removes it."""
        pass

    @abstractmethod
    def update(self, path: str, values: dict[str, Any]) -> None:
        """Apply several writes relative to path as one unit.

        Keys are relative paths; None deletes, ``Increment`` applies a
        numeric delta.
        """
        pass

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove the value at path and everything beneath it."""
        pass

    @abstractmethod
    def push(self, path: str, value: Any) -> str:
        """Append value under a generated, insertion-ordered key. Returns the key."""
        pass

    def new_key(self) -> str:
        """Generate an insertion-ordered child key without writing anything."""
        return generate_push_id()

    def increment(self, path: str, delta: int | float) -> None:
        """Atomically add delta to the number at path."""
        parent, _, leaf = path.rstrip("/").rpartition("/")
        self.update(parent, {leaf: Increment(delta)})

    # Subscriptions
    @abstractmethod
    def subscribe(
        self,
        path: str,
        callback: SnapshotCallback,
        order_by: str | None = None,
        equal_to: Any = None,
        limit_to_last: int | None = None,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Deliver the ordered child list now and after every change under path."""
        pass

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        """Stop deliveries to a subscription."""
        pass

    # Lifecycle
    @abstractmethod
    def close(self) -> None:
        """Close the store and release resources."""
        pass

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
