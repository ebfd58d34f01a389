"""Field-level diff between consecutive form snapshots."""

import json
from collections.abc import Mapping
from typing import Any

from intake_portal.exceptions import DiffError
from intake_portal.models.audit import FieldChange
from intake_portal.models.form import FormType
from intake_portal.models.form_fields import field_label, field_order


def stringify(value: Any) -> str | None:
    """Normalize a field value for comparison.

    None stays None so that null and empty string remain distinct.
    Structured values are JSON-encoded with sorted keys.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, sort_keys=True, default=str)
    except (TypeError, ValueError) as e:
        raise DiffError(f"Cannot compare value {value!r}: {e}") from e


def _ordered_keys(keys: set[str], form_type: FormType | None) -> list[str]:
    declared = [k for k in field_order(form_type) if k in keys]
    seen = set(declared)
    return declared + sorted(k for k in keys if k not in seen)


def diff(
    previous: Mapping[str, Any] | None,
    current: Mapping[str, Any],
    form_type: FormType | None = None,
) -> list[FieldChange]:
    """Compute the changes from ``previous`` to ``current``.

    Args:
        previous: The prior snapshot data, or None for a first version
        current: The new snapshot data
        form_type: Selects the field schema used for labels and order

    Returns:
        One FieldChange per differing key, in schema order then
        alphabetically for keys the schema does not declare

    Raises:
        DiffError: If either snapshot is not a mapping or holds an
            unencodable value
    """
    if previous is None:
        return []
    if not isinstance(previous, Mapping) or not isinstance(current, Mapping):
        raise DiffError("Snapshots must be mappings")

    changes: list[FieldChange] = []
    for key in _ordered_keys(set(previous) | set(current), form_type):
        old = stringify(previous.get(key))
        new = stringify(current.get(key))
        if old != new:
            changes.append(
                FieldChange(field=field_label(key), old_value=old, new_value=new, key=key)
            )
    return changes


def apply_changes(
    snapshot: Mapping[str, Any],
    changes: list[FieldChange],
) -> dict[str, Any]:
    """Return a copy of ``snapshot`` with each change's new value written at its key."""
    result = dict(snapshot)
    for change in changes:
        if change.key is None:
            raise DiffError(f"Change for {change.field!r} has no key")
        result[change.key] = change.new_value
    return result
