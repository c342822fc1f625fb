"""SQL safety guard applied to every generated statement."""

from .sql_guard import (
    BANNED_KEYWORDS,
    is_safe_select,
    has_random_order,
    ensure_limit,
    limit_value,
    validate_sql,
)

__all__ = [
    "BANNED_KEYWORDS",
    "is_safe_select",
    "has_random_order",
    "ensure_limit",
    "limit_value",
    "validate_sql",
]
