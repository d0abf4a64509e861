"""
Request parsing and row serialization helpers shared by the services.
"""

from typing import Any, Dict, Optional

from ashilac.errors import ValidationError

# PostgreSQL INTEGER range
INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


def parse_int(value: Any, field: str) -> int:
    """
    Coerce a JSON value to int, rejecting booleans, floats with a fraction,
    anything non-numeric and values outside the INTEGER column range.

    Raises:
        ValidationError: If the value is not an integer or out of range.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer")
        number = int(value)
    else:
        try:
            number = int(str(value).strip())
        except ValueError:
            raise ValidationError(f"{field} must be an integer")

    if not INT_MIN <= number <= INT_MAX:
        raise ValidationError(f"{field} is out of range")
    return number


def public_user(row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Public summary of a joined user row; None when the user is gone."""
    if row.get("user_id") is None:
        return None
    return {
        "id": row["user_id"],
        "name": row["user_name"],
        "email": row["user_email"],
        "role": row["user_role"],
    }
