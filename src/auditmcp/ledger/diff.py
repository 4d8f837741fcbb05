"""Field-level diffing of two opaque state snapshots."""

from __future__ import annotations

import json
from collections.abc import Mapping
from collections.abc import Sequence
from typing import Any

from auditmcp.models.enums import ChangeType
from auditmcp.models.events import ChangeDiff


def _normalize(value: Any) -> Any:
    # Map keys become their own canonical form so 1 and "1" stay distinct
    # and mixed key types can still be sorted.
    if isinstance(value, Mapping):
        return {_canonical(key): _normalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    return value


def _canonical(value: Any) -> str:
    """Serialize *value* for equality checks, independent of dict key order.

    Never raises: values that cannot be serialized fall back to ``repr``.
    """
    try:
        return json.dumps(
            _normalize(value), sort_keys=True, default=str, separators=(",", ":")
        )
    except (TypeError, ValueError, RecursionError):
        return repr(value)


def _ordered_keys(
    before: Mapping[str, Any], after: Mapping[str, Any]
) -> list[str]:
    keys = list(before)
    keys.extend(key for key in after if key not in before)
    return keys


def diff(
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any] | None,
) -> list[ChangeDiff]:
    """Compute the changes turning *before* into *after*.

    Keys of *before* come first in their own order, followed by keys that
    only appear in *after*, so the same input always yields the same list.
    A key missing from both sides produces no entry; a key whose value is
    ``None`` on one side is still considered present on that side.
    """
    before = before or {}
    after = after or {}
    changes: list[ChangeDiff] = []
    for key in _ordered_keys(before, after):
        in_before = key in before
        in_after = key in after
        old_value = before.get(key)
        new_value = after.get(key)
        if in_before and in_after and _canonical(old_value) == _canonical(new_value):
            continue
        if not in_before:
            change_type = ChangeType.added
        elif not in_after:
            change_type = ChangeType.removed
        else:
            change_type = ChangeType.modified
        changes.append(
            ChangeDiff(
                field=key,
                old_value=old_value,
                new_value=new_value,
                change_type=change_type,
            )
        )
    return changes


def _change_key(change: ChangeDiff) -> tuple[str, str, str, str]:
    return (
        change.field,
        change.change_type.value,
        _canonical(change.old_value),
        _canonical(change.new_value),
    )


def changes_equal(left: Sequence[ChangeDiff], right: Sequence[ChangeDiff]) -> bool:
    """Structural, order-insensitive comparison of two change lists."""
    if len(left) != len(right):
        return False
    return sorted(map(_change_key, left)) == sorted(map(_change_key, right))
