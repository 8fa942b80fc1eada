"""
Input validation helpers — collect field-level errors, raise once.
"""
import math

from leadmatch.errors import ValidationError


class FieldErrors:
    """Accumulates {field, message} pairs; raise_if_any() raises ValidationError."""

    def __init__(self):
        self.errors = []

    def add(self, field, message):
        self.errors.append({'field': field, 'message': message})

    def raise_if_any(self):
        if self.errors:
            raise ValidationError(details=list(self.errors))


def clean_text(data, field, errors, required=True, max_length=None):
    """Strip a string field. Returns None when absent/blank (and records an error if required)."""
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            errors.add(field, f'{field.replace("_", " ").capitalize()} is required')
        return None
    if not isinstance(value, str):
        errors.add(field, f'{field.replace("_", " ").capitalize()} must be a string')
        return None
    value = value.strip()
    if max_length and len(value) > max_length:
        errors.add(field, f'{field.replace("_", " ").capitalize()} must be at most {max_length} characters')
        return None
    return value


def clean_amount(data, field, errors, required=True):
    """Non-negative number. Numeric strings are accepted ("5000" → 5000.0)."""
    value = data.get(field)
    if value is None or value == '':
        if required:
            errors.add(field, f'{field.capitalize()} is required')
        return None
    if isinstance(value, bool):
        errors.add(field, f'{field.capitalize()} must be a number')
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        errors.add(field, f'{field.capitalize()} must be a number')
        return None
    if not math.isfinite(num):
        errors.add(field, f'{field.capitalize()} must be a number')
        return None
    if num < 0:
        errors.add(field, f'{field.capitalize()} must be a positive number')
        return None
    return num


def clean_user_id(data, field, errors):
    """Positive integer id. Numeric strings are accepted ("42" → 42)."""
    value = data.get(field)
    label = field.replace("_", " ").capitalize()
    if value is None or value == '':
        errors.add(field, f'{label} is required')
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        errors.add(field, f'{label} must be a user id')
        return None
    try:
        user_id = int(value)
    except (TypeError, ValueError):
        errors.add(field, f'{label} must be a user id')
        return None
    if user_id <= 0:
        errors.add(field, f'{label} must be a user id')
        return None
    return user_id
