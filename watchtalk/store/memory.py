"""In-memory storage backend."""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any

from watchtalk.store.base import (
    Child, ErrorCallback, Increment, SnapshotCallback, Store, Subscription,
    is_related, split_path,
)
from watchtalk.store.push_id import PushIdGenerator


logger = logging.getLogger(__name__)


def _normalize(value: Any) -> Any:
    """Copy a value for storage. None entries and empty maps do not exist."""
    if isinstance(value, dict):
        result = {}
        for key, child in value.items():
            child = _normalize(child)
            if child is not None:
                result[str(key)] = child
        return result or None
    if isinstance(value, list):
        return [copy.deepcopy(v) for v in value]
    if isinstance(value, Increment):
        raise TypeError("Increment is only valid as an update() value")
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _order_value(value: Any) -> tuple:
    """Sort key mirroring realtime-store ordering: null < bool < number < string < object."""
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if _is_number(value):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, 0)


def _matches(value: Any, expected: Any) -> bool:
    if _is_number(value) and _is_number(expected):
        return value == expected
    return type(value) is type(expected) and value == expected


class MemoryStore(Store):
    """Nested-dict store held in process memory.

    Writes notify every subscription whose location is an ancestor,
    descendant or the written path itself.
    """

    def __init__(self):
        self._root: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._subscriptions: list[Subscription] = []
        self._ids = PushIdGenerator()

    # Tree helpers (caller holds the lock)

    def _read(self, parts: list[str]) -> Any:
        node: Any = self._root
        for part in parts:
            if not isinstance(node, dict):
                return None
            node = node.get(part)
            if node is None:
                return None
        return node

    def _write(self, parts: list[str], value: Any) -> None:
        if not parts:
            self._root = value if isinstance(value, dict) else {}
            return

        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[part] = child
            node = child

        if value is None:
            node.pop(parts[-1], None)
            self._prune(parts[:-1])
        else:
            node[parts[-1]] = value

    def _prune(self, parts: list[str]) -> None:
        """Drop ancestors left empty by a removal."""
        while parts:
            node = self._read(parts)
            if node != {}:
                return
            parent = self._read(parts[:-1])
            parent.pop(parts[-1], None)
            parts = parts[:-1]

    def _after_write(self) -> None:
        """Hook for persistent subclasses."""
        pass

    @contextmanager
    def _transaction(self):
        """Hold the lock for one write and restore the tree if it fails."""
        with self._lock:
            previous = copy.deepcopy(self._root)
            try:
                yield
                self._after_write()
            except Exception:
                self._root = previous
                raise

    def _notify(self, changed: list[list[str]]) -> None:
        with self._lock:
            targets = [
                sub for sub in self._subscriptions
                if any(is_related(sub.parts, parts) for parts in changed)
            ]
        for sub in targets:
            logger.debug(f"Delivering snapshot for {sub.path}")
            sub.deliver()

    # Reads

    def get(self, path: str) -> Any | None:
        with self._lock:
            return copy.deepcopy(self._read(split_path(path)))

    def query(
        self,
        path: str,
        order_by: str | None = None,
        equal_to: Any = None,
        limit_to_last: int | None = None,
    ) -> list[Child]:
        with self._lock:
            node = self._read(split_path(path))
            if not isinstance(node, dict):
                return []
            children = [(key, copy.deepcopy(value)) for key, value in node.items()]

        if order_by is None:
            children.sort(key=lambda c: c[0])
        else:
            def field_of(value: Any) -> Any:
                return value.get(order_by) if isinstance(value, dict) else None

            if equal_to is not None:
                children = [c for c in children if _matches(field_of(c[1]), equal_to)]
            children.sort(key=lambda c: (_order_value(field_of(c[1])), c[0]))

        if limit_to_last is not None:
            children = children[-limit_to_last:] if limit_to_last > 0 else []
        return children

    # Writes

    def set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        with self._transaction():
            self._write(parts, _normalize(value))
        self._notify([parts])

    def update(self, path: str, values: dict[str, Any]) -> None:
        base = split_path(path)
        changed = []
        with self._transaction():
            for rel, value in values.items():
                parts = base + split_path(rel)
                if isinstance(value, Increment):
                    current = self._read(parts)
                    value = (current if _is_number(current) else 0) + value.delta
                else:
                    value = _normalize(value)
                self._write(parts, value)
                changed.append(parts)
        if changed:
            self._notify(changed)

    def remove(self, path: str) -> None:
        self.set(path, None)

    def new_key(self) -> str:
        return self._ids.generate()

    def push(self, path: str, value: Any) -> str:
        key = self.new_key()
        self.set(f"{path.rstrip('/')}/{key}", value)
        return key

    # Subscriptions

    def subscribe(
        self,
        path: str,
        callback: SnapshotCallback,
        order_by: str | None = None,
        equal_to: Any = None,
        limit_to_last: int | None = None,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        sub = Subscription(
            self, path, callback,
            order_by=order_by,
            equal_to=equal_to,
            limit_to_last=limit_to_last,
            on_error=on_error,
        )
        with self._lock:
            self._subscriptions.append(sub)
        sub.deliver()
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # Lifecycle

    def close(self) -> None:
        with self._lock:
            subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub.active = False
