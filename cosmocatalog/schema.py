"""
Field access helpers for catalog records.

Catalog items are decoded JSON objects; these helpers turn a missing or
wrong-typed field into a SchemaError naming the record it came from.
"""
from numbers import Real

from .errors import SchemaError

_TYPE_NAMES = {
    str: 'a string',
    dict: 'an object',
    list: 'a list',
    bool: 'a boolean',
    Real: 'a number',
}


def _describe(types) -> str:
    if not isinstance(types, tuple):
        types = (types,)
    return ' or '.join(_TYPE_NAMES.get(t, t.__name__) for t in types)


def _matches(value, types) -> bool:
    if not isinstance(types, tuple):
        types = (types,)
    if isinstance(value, bool) and bool not in types:
        return False
    return isinstance(value, types)


def required_field(info: dict, key: str, types, what: str):
    """
    Return ``info[key]``, which must be present and of one of ``types``.

    Raises:
        SchemaError: if the field is missing or has the wrong type
    """
    if key not in info or info[key] is None:
        raise SchemaError(f"Missing {key} for {what}")
    value = info[key]
    if not _matches(value, types):
        raise SchemaError(f"{key} for {what} must be {_describe(types)}")
    return value


def optional_field(info: dict, key: str, types, what: str, default=None):
    """Like ``required_field`` but returns ``default`` when the field is absent."""
    if key not in info or info[key] is None:
        return default
    return required_field(info, key, types, what)


def require_mapping(value, what: str) -> dict:
    if not isinstance(value, dict):
        raise SchemaError(f"{what} must be an object")
    return value
