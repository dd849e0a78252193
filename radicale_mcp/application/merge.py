"""Sparse overlay of update requests onto stored records."""

import dataclasses
from datetime import datetime, timezone
from typing import Optional, TypeVar

from ..domain import Todo
from ..domain.patches import Patch, TodoPatch
from ..infrastructure.dates import ISO_UTC_FORMAT

R = TypeVar('R')


def apply_patch(record: R, patch: Patch) -> R:
    """Return a copy of ``record`` with only the supplied patch fields replaced.

    An explicit ``None`` clears the field; text fields are cleared to ``""``
    so the record shape stays the same.
    """
    defaults = {f.name: f.default for f in dataclasses.fields(record)}
    changes = {}
    for name, value in patch.provided().items():
        if name not in defaults or name == 'uid':
            continue
        if value is None and defaults[name] == "":
            value = ""
        changes[name] = value
    return dataclasses.replace(record, **changes)


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime(ISO_UTC_FORMAT)


def normalize_completed(
    before: Todo, merged: Todo, patch: TodoPatch, now: Optional[str] = None
) -> Todo:
    """Make ``completed`` follow ``status``.

    A todo carries a completion stamp exactly when its status is COMPLETED.
    Setting the status to COMPLETED stamps it with ``now``; a todo that was
    already completed and whose status is not part of the request keeps its
    stamp. Any ``completed`` value in the request is discarded.
    """
    if merged.status:
        merged = dataclasses.replace(merged, status=merged.status.upper())

    if not merged.is_completed:
        return dataclasses.replace(merged, completed=None)

    if not patch.is_provided('status') and before.is_completed and before.completed:
        return dataclasses.replace(merged, completed=before.completed)

    return dataclasses.replace(merged, completed=now or utc_now())
