"""
SQL Safety Guard.

Static validation of generator output before anything reaches a database.
This is a syntactic allow-list, not a parser: it favours auditability and
no false negatives on the banned keyword set. Keywords inside string
literals or comments are not told apart from executable ones, so a literal
containing "drop" is rejected too.

Checks run in a fixed order:
1. is_safe_select   - SELECT/WITH only, single statement, no write/DDL keywords,
                      no system schema references
2. has_random_order - ORDER BY random() is rejected, not repaired
3. ensure_limit     - the only normalization: append LIMIT when none is present
4. limit_value      - declared LIMIT must not exceed the configured maximum
"""

import re
from typing import Optional, Sequence

from ..adapters.database_adapter import SYSTEM_SCHEMAS
from ..errors import GuardRejectionError

BANNED_KEYWORDS = (
    "INSERT", "UPDATE", "DELETE", "ALTER", "DROP", "CREATE",
    "TRUNCATE", "COPY", "GRANT", "REVOKE", "VACUUM", "ANALYZE",
)

_BANNED = re.compile(r"\b(" + "|".join(BANNED_KEYWORDS) + r")\b", re.IGNORECASE)
_STARTS_READ_ONLY = re.compile(r"^(SELECT|WITH)\b", re.IGNORECASE)
_RANDOM_ORDER = re.compile(r"order\s+by\s+random\s*\(\s*\)", re.IGNORECASE)
_HAS_LIMIT = re.compile(r"\blimit\b", re.IGNORECASE)
_LIMIT_VALUE = re.compile(r"\blimit\s+(\d+)", re.IGNORECASE)


def _system_schema_pattern(system_schemas: Sequence[str]) -> "re.Pattern":
    names = "|".join(re.escape(s) for s in system_schemas)
    return re.compile(r"\b(" + names + r")\.", re.IGNORECASE)


_DEFAULT_SYSTEM_SCHEMA = _system_schema_pattern(SYSTEM_SCHEMAS)


def is_safe_select(sql: str, system_schemas: Sequence[str] = SYSTEM_SCHEMAS) -> bool:
    """True only for a single read-only SELECT/WITH statement."""
    s = sql.strip()
    if not _STARTS_READ_ONLY.match(s):
        return False
    if ";" in s:
        return False
    if _BANNED.search(s):
        return False
    pattern = (
        _DEFAULT_SYSTEM_SCHEMA
        if tuple(system_schemas) == SYSTEM_SCHEMAS
        else _system_schema_pattern(system_schemas)
    )
    if system_schemas and pattern.search(s):
        return False
    return True


def has_random_order(sql: str) -> bool:
    """Detect ORDER BY random(), whitespace and case tolerant."""
    return bool(_RANDOM_ORDER.search(sql))


def ensure_limit(sql: str, max_limit: int = 1000) -> str:
    """
    Append LIMIT <max_limit> unless the statement already has a LIMIT.

    An existing LIMIT is respected as written; its value is bounded
    separately (see limit_value).
    """
    s = sql.strip()
    if _HAS_LIMIT.search(s):
        return s
    return f"{s} LIMIT {max_limit}"


def limit_value(sql: str) -> Optional[int]:
    """First integer literal following LIMIT, or None."""
    match = _LIMIT_VALUE.search(sql)
    return int(match.group(1)) if match else None


def validate_sql(
    sql: str,
    max_limit: int,
    system_schemas: Sequence[str] = SYSTEM_SCHEMAS,
) -> str:
    """
    Apply every guard check in order and return the statement to execute.

    Raises:
        GuardRejectionError: On the first failed check
    """
    if not isinstance(sql, str) or not sql.strip():
        raise GuardRejectionError("Generated SQL is empty")
    if not is_safe_select(sql, system_schemas):
        raise GuardRejectionError("Generated SQL rejected by guard")
    if has_random_order(sql):
        raise GuardRejectionError("ORDER BY random() is not allowed")
    limited = ensure_limit(sql, max_limit)
    declared = limit_value(limited)
    if declared is not None and declared > max_limit:
        raise GuardRejectionError(f"LIMIT {declared} exceeds MAX_LIMIT {max_limit}")
    return limited
