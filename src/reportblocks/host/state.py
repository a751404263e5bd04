"""
In-memory report state: the flat key -> value store the editor writes into.

Layout of keys
--------------
- ``"<section_id>"``        : the section's block document (tuple of blocks)
- ``"<section_id>-title"``  : the section's title string
- anything else             : header/meta fields owned by the host page

The core never patches a value partially. Every write goes through
:meth:`ReportState.update_field`, which replaces the whole value at a key and
bumps the revision counter. :meth:`ReportState.snapshot` captures a
JSON-safe copy of the store at the current revision.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar, cast

from pydantic import BaseModel

T = TypeVar("T")


def _jsonify(value: Any) -> Any:
    """
    Return a JSON-safe representation of ``value``.

    - Primitives (None, bool, int, float, str) -> returned as-is.
    - Pydantic models -> ``model_dump(mode="json")``.
    - dict -> new dict with keys coerced to str.
    - list/tuple -> new list with recursive conversion.
    - anything else -> ``repr(obj)`` fallback.
    """
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {str(k): _jsonify(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonify(v) for v in value]
    return repr(value)


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """
    Immutable record of the report state at one revision.

    Attributes
    ----------
    timestamp : str
        ISO-8601 UTC capture time with millisecond precision and a trailing ``Z``.
    revision : int
        Revision counter of the store at capture time.
    note : str | None
        Optional label (e.g. ``"after move"``).
    data : dict[str, Any]
        JSON-safe copy of every key.
    """

    timestamp: str
    revision: int
    note: str | None
    data: dict[str, Any] = field(default_factory=dict)


class ReportState:
    """Flat key-value store with a revision counter and snapshot history."""

    __slots__ = ("_store", "_rev", "_snapshots")

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._store: dict[str, Any] = dict(initial or {})
        self._rev: int = 0
        self._snapshots: list[StateSnapshot] = []

    # ------------------------------- KV API ---------------------------------

    def update_field(self, key: str, value: Any) -> None:
        """Replace the whole value at ``key`` and bump the revision counter."""
        self._store[key] = value
        self._rev += 1

    def get(self, key: str, default: T | None = None) -> T | None:
        """Return the stored value for ``key``, or ``default`` if not found."""
        if key in self._store:
            return cast(T | None, self._store[key])
        return default

    def remove(self, key: str) -> None:
        """Drop ``key`` if present (bumps the revision only when something changed)."""
        if key in self._store:
            del self._store[key]
            self._rev += 1

    def keys(self) -> tuple[str, ...]:
        """Return the current keys as a sorted tuple."""
        return tuple(sorted(self._store.keys()))

    @property
    def revision(self) -> int:
        return self._rev

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._store)

    # ------------------------------- Snapshots ------------------------------

    def snapshot(self, note: str | None = None) -> StateSnapshot:
        """Capture a JSON-safe copy of the store and append it to the history."""
        ts_str = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
        snap = StateSnapshot(
            timestamp=ts_str,
            revision=self._rev,
            note=note,
            data={k: _jsonify(v) for k, v in self._store.items()},
        )
        self._snapshots.append(snap)
        return snap

    def snapshots(self) -> tuple[StateSnapshot, ...]:
        return tuple(self._snapshots)


__all__ = ["ReportState", "StateSnapshot"]
