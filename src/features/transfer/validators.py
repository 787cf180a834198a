import re
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_REGEX = re.compile(r"^[\d\s\-+()]+$")
TIME_REGEX = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")

# Firma común: (valor, campo, fila) -> mensaje de error o None
Validator = Callable[[str, str, Mapping[str, Any]], Optional[str]]


def parse_day(value: Any) -> Optional[date]:
    """Convierte date/datetime/ISO string a fecha (granularidad de día)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def validate_email(value: str, field: str, row: Mapping[str, Any]) -> Optional[str]:
    if not EMAIL_REGEX.match(value.strip()):
        return "Please enter a valid email address"
    return None


def validate_phone(value: str, field: str, row: Mapping[str, Any]) -> Optional[str]:
    if not PHONE_REGEX.match(value):
        return "Please enter a valid phone number"
    digits = re.sub(r"\D", "", value)
    if len(digits) < 10 or len(digits) > 15:
        return "Phone number must be between 10 and 15 digits"
    return None


def validate_date(value: str, field: str, row: Mapping[str, Any]) -> Optional[str]:
    if parse_day(value) is None:
        return f"Please enter a valid {field}"
    return None


def validate_birth_date(value: str, field: str, row: Mapping[str, Any]) -> Optional[str]:
    parsed = parse_day(value)
    if parsed is None:
        return f"Please enter a valid {field}"
    today = date.today()
    if parsed > today:
        return f"{field} cannot be in the future"
    if parsed.year < today.year - 150:
        return f"{field} is too old"
    return None


def validate_number(value: str, field: str, row: Mapping[str, Any]) -> Optional[str]:
    try:
        float(value)
    except ValueError:
        return f"{field} must be a valid number"
    return None


def validate_time(value: str, field: str, row: Mapping[str, Any]) -> Optional[str]:
    if not TIME_REGEX.match(value.strip()):
        return f"Please enter a valid {field}"
    return None


FIELD_VALIDATORS: Dict[str, Validator] = {
    "email": validate_email,
    "phone": validate_phone,
    "date": validate_date,
    "birth_date": validate_birth_date,
    "number": validate_number,
    "time": validate_time,
}


def is_missing(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def check_row(
    row: Mapping[str, Any],
    line: int,
    required_fields,
    validators: Mapping[str, str],
):
    """
    Aplica obligatorios y validadores por campo a una fila ya normalizada.
    Los validadores solo corren si el campo trae valor.
    """
    errors = []
    for name in required_fields:
        if is_missing(row.get(name)):
            errors.append(f'Row {line}: Missing required field "{name}"')

    for name, validator_key in validators.items():
        value = row.get(name)
        if is_missing(value):
            continue
        validator = FIELD_VALIDATORS.get(validator_key)
        if validator is None:
            continue
        error = validator(str(value), name, row)
        if error:
            errors.append(f"Row {line}: {error}")
    return errors
