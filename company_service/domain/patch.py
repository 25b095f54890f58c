"""Partial-update merging for loosely-typed PATCH payloads.

A patch arrives as a plain JSON object. Each recognised field is type-checked
on its own, and the merge is all-or-nothing: if any field is rejected the
current record is left untouched.
"""
import math
from typing import Any, Callable, Dict, Mapping

from company_service.core.errors import EmptyPatchError, TypeMismatchError
from company_service.domain.company import Company

MUTABLE_FIELDS = ("name", "description", "employees", "registered", "type")


def _coerce_text(field: str, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeMismatchError(field, "a string")
    return value


def _coerce_optional_text(field: str, value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeMismatchError(field, "a string or null")
    return value


def _coerce_integer(field: str, value: Any) -> int:
    # bool is an int subclass; JSON true/false is never a count
    if isinstance(value, bool):
        raise TypeMismatchError(field, "a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise TypeMismatchError(field, "a number")
        return int(value)
    raise TypeMismatchError(field, "a number")


def _coerce_boolean(field: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeMismatchError(field, "a boolean")
    return value


_COERCERS: Dict[str, Callable[[str, Any], Any]] = {
    "name": _coerce_text,
    "description": _coerce_optional_text,
    "employees": _coerce_integer,
    "registered": _coerce_boolean,
    "type": _coerce_text,
}


def ensure_patchable(fields: Mapping[str, Any]) -> None:
    """Reject a patch that names no mutable field.

    ``id`` and unknown keys do not count.

    Raises:
        EmptyPatchError: If nothing in ``fields`` can be applied
    """
    if not any(key in fields for key in MUTABLE_FIELDS):
        raise EmptyPatchError()


def extract_changes(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Type-check and normalise the mutable fields of a patch payload.

    Args:
        fields: Decoded JSON object from the request body

    Returns:
        Mapping of field name to coerced value, only for keys present

    Raises:
        EmptyPatchError: If no mutable field is present
        TypeMismatchError: If a present field has the wrong kind
    """
    ensure_patchable(fields)
    return {
        key: _COERCERS[key](key, fields[key])
        for key in MUTABLE_FIELDS
        if key in fields
    }


def merge_patch(current: Company, fields: Mapping[str, Any]) -> Company:
    """Apply a patch payload to a company.

    ``description: null`` clears the description; a missing key leaves it
    as is. ``id`` is never applied.

    Args:
        current: Stored record
        fields: Decoded JSON object from the request body

    Returns:
        New candidate record with the same id. ``current`` is not modified.

    Raises:
        EmptyPatchError: If no mutable field is present
        TypeMismatchError: If a present field has the wrong kind
    """
    changes = extract_changes(fields)
    return current.model_copy(update=changes)
