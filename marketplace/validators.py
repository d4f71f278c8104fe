"""
Custom field validators for marketplace models.
"""

import math

from django.core.exceptions import ValidationError


def _as_float(value, field_name):
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f'{field_name} must be a number.',
            code=f'invalid_{field_name.lower()}'
        )
    if not math.isfinite(number):
        raise ValidationError(
            f'{field_name} must be a finite number.',
            code=f'invalid_{field_name.lower()}'
        )
    return number


def validate_latitude(value):
    """
    Validate latitude is within [-90, 90].

    Args:
        value: Latitude in decimal degrees (None is allowed, field is optional)

    Raises:
        ValidationError: If latitude is out of range
    """
    if value is None:
        return

    if not -90 <= _as_float(value, 'Latitude') <= 90:
        raise ValidationError(
            'Latitude must be between -90 and 90.',
            code='latitude_out_of_range'
        )


def validate_longitude(value):
    """
    Validate longitude is within [-180, 180].

    Args:
        value: Longitude in decimal degrees (None is allowed, field is optional)

    Raises:
        ValidationError: If longitude is out of range
    """
    if value is None:
        return

    if not -180 <= _as_float(value, 'Longitude') <= 180:
        raise ValidationError(
            'Longitude must be between -180 and 180.',
            code='longitude_out_of_range'
        )


def validate_not_blank(value):
    """Reject empty or whitespace-only text."""
    if not value or not str(value).strip():
        raise ValidationError(
            'This field cannot be blank.',
            code='blank'
        )
