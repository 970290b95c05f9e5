"""Metadata filter helpers.

Filters are Mongo-style dicts, the shape the host application already uses:
``{"owner_id": "u1"}`` or ``{"source_id": {"$in": ["a", "b"]}}``. Several
fields are AND-ed.
"""
from typing import Any, Optional

SUPPORTED_OPERATORS = {"$eq", "$ne", "$in", "$nin"}


def source_filter(source_id: str, owner_id: Optional[str] = None) -> dict[str, Any]:
    """Filter selecting every record of one source document."""
    flt: dict[str, Any] = {"source_id": source_id}
    if owner_id is not None:
        flt["owner_id"] = owner_id
    return flt


def allow_list_filter(source_ids: Optional[list[str]]) -> Optional[dict[str, Any]]:
    """Filter restricting a search to the given sources, None when unrestricted."""
    if not source_ids:
        return None
    return {"source_id": {"$in": list(dict.fromkeys(source_ids))}}


def validate_filter(flt: dict[str, Any]) -> None:
    """Reject operators the index backends cannot honour."""
    for field_name, condition in flt.items():
        if field_name.startswith("$"):
            raise ValueError(f"Unsupported top-level operator: {field_name}")
        if isinstance(condition, dict):
            unknown = set(condition) - SUPPORTED_OPERATORS
            if unknown:
                raise ValueError(f"Unsupported filter operators for '{field_name}': {sorted(unknown)}")
            for op in ("$in", "$nin"):
                if op in condition and not isinstance(condition[op], (list, tuple, set)):
                    raise ValueError(f"'{op}' for '{field_name}' expects a list")


def matches_filter(metadata: dict[str, Any], flt: Optional[dict[str, Any]]) -> bool:
    """Check a record's metadata against a filter."""
    if not flt:
        return True

    for field_name, condition in flt.items():
        value = metadata.get(field_name)
        if isinstance(condition, dict):
            if "$eq" in condition and value != condition["$eq"]:
                return False
            if "$ne" in condition and value == condition["$ne"]:
                return False
            if "$in" in condition and value not in condition["$in"]:
                return False
            if "$nin" in condition and value in condition["$nin"]:
                return False
        elif value != condition:
            return False

    return True
