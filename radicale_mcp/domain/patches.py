"""Sparse update requests.

Every field of a patch is one of three things: ``UNSET`` (leave the stored
value alone), a value (replace it) or ``None`` (clear it).
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Union


class _Unset:
    """Marker for a field that was not part of the request."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class Patch:
    """Base for the per-record patch dataclasses."""

    def provided(self) -> Dict[str, Any]:
        """Fields explicitly present in the request, including explicit None."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_provided(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    @classmethod
    def from_mapping(cls, values: Dict[str, Any]) -> 'Patch':
        """Build a patch from a mapping, ignoring keys the record cannot take."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in names})


@dataclass(frozen=True)
class EventPatch(Patch):
    summary: Union[str, None, _Unset] = UNSET
    start: Union[str, None, _Unset] = UNSET
    end: Union[str, None, _Unset] = UNSET
    description: Union[str, None, _Unset] = UNSET
    location: Union[str, None, _Unset] = UNSET
    all_day: Union[bool, None, _Unset] = UNSET


@dataclass(frozen=True)
class TodoPatch(Patch):
    summary: Union[str, None, _Unset] = UNSET
    description: Union[str, None, _Unset] = UNSET
    due: Union[str, None, _Unset] = UNSET
    priority: Union[int, None, _Unset] = UNSET
    status: Union[str, None, _Unset] = UNSET
    # Derived from status after merging; whatever is passed here is overridden.
    completed: Union[str, None, _Unset] = UNSET


@dataclass(frozen=True)
class ContactPatch(Patch):
    full_name: Union[str, None, _Unset] = UNSET
    first_name: Union[str, None, _Unset] = UNSET
    last_name: Union[str, None, _Unset] = UNSET
    email: Union[str, None, _Unset] = UNSET
    phone: Union[str, None, _Unset] = UNSET
    org: Union[str, None, _Unset] = UNSET
    title: Union[str, None, _Unset] = UNSET
    note: Union[str, None, _Unset] = UNSET
