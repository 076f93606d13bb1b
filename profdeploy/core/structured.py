# SPDX-License-Identifier: MIT
"""Helpers for reading untyped TOML/JSON data.

Used at the boundaries where deploy.toml and package.json are ingested.
Each getter returns None when the key is missing or has the wrong type, so
callers decide whether that is an error.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def as_obj_list(obj: object) -> ObjList | None:
    if isinstance(obj, list):
        return cast(ObjList, obj)
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value, stripped. Empty strings count as missing."""
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_int(table: Mapping[str, object], key: str) -> int | None:
    value = table.get(key)
    # bool is an int subclass; `processes = true` is not a count
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    if not isinstance(value, bool):
        return None
    return value


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> tuple[str, ...] | None:
    """Get a list of strings. A bare string is accepted as a one-item list."""
    value = table.get(key)
    if isinstance(value, str):
        return (value,)
    items = as_obj_list(value)
    if items is None or not all(isinstance(item, str) for item in items):
        return None
    return tuple(cast(list[str], items))


def get_str_map(table: Mapping[str, object], key: str) -> dict[str, str] | None:
    """Get a table whose values are all scalars, stringified."""
    sub = get_table(table, key)
    if sub is None:
        return None
    out: dict[str, str] = {}
    for k, v in sub.items():
        if isinstance(v, bool):
            out[k] = "true" if v else "false"
        elif isinstance(v, (str, int, float)):
            out[k] = str(v)
        else:
            return None
    return out
