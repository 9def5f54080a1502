"""
Field normalization shared by every lookup and mutation entry point.

All string input is trimmed before it is compared or written. Identifier
fields must be digits only; names must be non-empty.
"""

from typing import Optional

from affiliates.errors import ValidationError

# Human-readable labels used in error messages
FIELD_LABELS = {
    "nationalId": "National ID",
    "memberNumber": "Member number",
    "fullName": "Full name",
}


def normalize_digits(value: Optional[str], field: str) -> str:
    """
    Trim an identifier and require it to be digits only.

    Raises:
        ValidationError: if the value is missing, empty or has non-digits
    """
    label = FIELD_LABELS.get(field, field)

    if value is None:
        raise ValidationError(f"{label} is required", field=field)

    cleaned = str(value).strip()
    if not cleaned:
        raise ValidationError(f"{label} is required", field=field)

    # str.isdigit() also accepts superscripts and other unicode digits
    if not (cleaned.isascii() and cleaned.isdigit()):
        raise ValidationError(f"{label} must contain only digits", field=field)

    return cleaned


def normalize_name(value: Optional[str], field: str = "fullName") -> str:
    """Trim a name and collapse inner whitespace; reject empty names."""
    label = FIELD_LABELS.get(field, field)

    if value is None:
        raise ValidationError(f"{label} is required", field=field)

    cleaned = " ".join(str(value).split())
    if not cleaned:
        raise ValidationError(f"{label} is required", field=field)

    return cleaned


def normalize_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None
