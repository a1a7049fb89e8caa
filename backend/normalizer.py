import math
import re

# Matches: 12, " 12 ", "12.0" (spreadsheet float export), "#12"
CANONICAL_ID = re.compile(r'^#?\s*(\d+)(?:\.0+)?$')

LIST_SPLIT = re.compile(r'[,\n;|]+')

NONE_VALUES = {"none", "none listed", "n/a", "nan", "null", ""}

_BOOL_TRUTHY = {"true", "1", "yes", "y"}
_BOOL_FALSY = {"false", "0", "no", "n"}


def _is_missing(raw) -> bool:
    return raw is None or (isinstance(raw, float) and math.isnan(raw))


def normalize_course_id(raw) -> int | None:
    """
    Normalizes a course identifier to a positive-or-zero int.
    Handles: 12, 12.0, '12', ' 12 ', '12.0', '#12'
    Returns None if the value cannot be read as an identifier.
    """
    if _is_missing(raw) or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    if isinstance(raw, float):
        if raw.is_integer() and raw >= 0:
            return int(raw)
        return None
    m = CANONICAL_ID.match(str(raw).strip())
    if m:
        return int(m.group(1))
    return None


def normalize_id_list(raw) -> dict:
    """
    Splits a prerequisite cell or list into normalized course ids.

    Accepts a list/tuple of ids, or a string separated by commas, semicolons,
    pipes or newlines ('2;3', '2, 3'). 'none' / blank mean an empty list.

    Returns:
      {
        "valid":   [2, 3],     # normalized, first occurrence kept
        "invalid": ["abc"]     # tokens that are not ids
      }
    """
    if _is_missing(raw):
        return {"valid": [], "invalid": []}

    if isinstance(raw, (list, tuple)):
        tokens = list(raw)
    elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
        tokens = [raw]
    else:
        s = str(raw).strip()
        if s.lower() in NONE_VALUES:
            return {"valid": [], "invalid": []}
        tokens = LIST_SPLIT.split(s)

    valid: list[int] = []
    invalid: list[str] = []
    seen: set[int] = set()

    for token in tokens:
        if isinstance(token, str):
            token = token.strip()
            if not token:
                continue
        normalized = normalize_course_id(token)
        if normalized is None:
            invalid.append(str(token))
        elif normalized in seen:
            pass  # deduplicate silently
        else:
            valid.append(normalized)
            seen.add(normalized)

    return {"valid": valid, "invalid": invalid}


def coerce_bool(raw, default: bool = False) -> bool:
    """Python bool, 1/0, or string variants (TRUE/false/yes/n). Missing or blank -> default."""
    if _is_missing(raw):
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    s = str(raw).strip().lower()
    if not s:
        return default
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ValueError(f"Cannot read boolean from: {raw!r}")


def normalize_completion(raw) -> float | None:
    """'75', 75, 75.0, '75%' -> 75.0. Returns None for unreadable values."""
    if _is_missing(raw) or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    s = str(raw).strip().rstrip("%").strip()
    try:
        return float(s)
    except ValueError:
        return None
