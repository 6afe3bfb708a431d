"""
Shared parsing utilities
"""
from typing import Any, List, Optional


def parse_id_list(value: Any) -> List[str]:
    """
    Parse a comma separated id list from a query string

    Args:
        value: "a,b, c" string, an iterable of ids or None

    Returns:
        Ids in order with blanks and duplicates removed
    """
    if not value:
        return []

    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = [str(v) for v in value if v is not None]

    ids = []
    for part in parts:
        part = part.strip()
        if part and part not in ids:
            ids.append(part)
    return ids


def to_optional_str(value: Any) -> Optional[str]:
    """
    Normalise blank strings to None

    Args:
        value: Raw query value

    Returns:
        Stripped string or None
    """
    if value is None:
        return None
    value = str(value).strip()
    return value or None
