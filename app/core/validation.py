from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from app.core.errors import InvalidArgumentError, missing_fields

ERR_DECIMAL = "Can't convert {} string {!r} to decimal"  # Field name and value


def is_empty(value: Any) -> bool:
    if value is None or value == "" or (isinstance(value, (int, float, Decimal)) and not isinstance(value, bool) and value == 0):
        return True
    return isinstance(value, (list, tuple)) and len(value) == 0


def check_required(values: Mapping[str, Any]) -> None:
    """Raises one InvalidArgumentError naming every empty value, sorted."""
    empty = [name for name, value in values.items() if is_empty(value)]
    if empty:
        raise missing_fields(empty)


def parse_decimal(name: str, value: str) -> Decimal:
    try:
        d = Decimal(value.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise InvalidArgumentError(ERR_DECIMAL.format(name, value)) from exc
    if not d.is_finite():
        raise InvalidArgumentError(ERR_DECIMAL.format(name, value))
    return d
