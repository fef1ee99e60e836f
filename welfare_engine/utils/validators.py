"""
Validation helpers for context attributes and scheme identifiers
"""
import re
from typing import Any, Callable, Dict

from ..exceptions import ValidationError


ATTRIBUTE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,63}$")
VALID_GENDERS = ['male', 'female', 'other', 'prefer_not_to_say']


def validate_attribute_name(name: str) -> str:
    """
    Validate a context attribute name

    Returns:
        The name, unchanged

    Raises:
        ValidationError: if the name is not a lower-case identifier
    """
    if not isinstance(name, str) or not ATTRIBUTE_NAME_PATTERN.match(name):
        raise ValidationError(f"Invalid attribute name: {name!r}")
    return name


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a whole number")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError(f"{name} must be a whole number")
    return value


def _validate_age(value: Any) -> int:
    age = _as_int("age", value)
    if age < 0 or age > 150:
        raise ValidationError("Age must be between 0 and 150")
    return age


def _validate_income(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError("Income must be a valid number")
    try:
        income = float(value)
    except (ValueError, TypeError):
        raise ValidationError("Income must be a valid number")
    if income < 0:
        raise ValidationError("Income cannot be negative")
    return income


def _validate_family_size(value: Any) -> int:
    size = _as_int("family_size", value)
    if size < 1:
        raise ValidationError("Family size must be at least 1")
    return size


def _validate_gender(value: Any) -> str:
    if not isinstance(value, str) or value.lower() not in VALID_GENDERS:
        raise ValidationError(f"Gender must be one of: {', '.join(VALID_GENDERS)}")
    return value.lower()


def _validate_state(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("State must be a non-empty string")
    return value.strip().upper()


def _validate_bool(name: str) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "yes"):
            return True
        if isinstance(value, str) and value.lower() in ("false", "no"):
            return False
        raise ValidationError(f"{name} must be true or false")
    return check


def _validate_text(name: str) -> Callable[[Any], str]:
    def check(value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{name} must be a non-empty string")
        return value.strip()
    return check


ATTRIBUTE_VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    "age": _validate_age,
    "income": _validate_income,
    "family_size": _validate_family_size,
    "gender": _validate_gender,
    "state": _validate_state,
    "land_ownership": _validate_bool("land_ownership"),
    "occupation": _validate_text("occupation"),
    "district": _validate_text("district"),
    "category": _validate_text("category"),
}


def validate_attribute_value(name: str, value: Any) -> Any:
    """
    Validate and normalise a context attribute value

    Args:
        name: Attribute name
        value: Declared value; None marks the attribute unknown

    Returns:
        Normalised value

    Raises:
        ValidationError: if the value is not acceptable for the attribute
    """
    if value is None:
        return None
    validator = ATTRIBUTE_VALIDATORS.get(name)
    if validator is None:
        if not isinstance(value, (str, int, float, bool, list)):
            raise ValidationError(f"Unsupported value type for {name}: {type(value).__name__}")
        return value
    return validator(value)
