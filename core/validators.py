from django.core.exceptions import ValidationError
from phonenumber_field.phonenumber import to_python
from phonenumbers.phonenumberutil import is_possible_number


def validate_possible_number(phone, country=None):
    """
    Validate a shipping contact phone number.

    Only checks that the number is *possible* for its region; couriers
    reject numbers that cannot be dialled at all, not numbers that are
    merely unassigned.
    """
    if not phone:
        raise ValidationError(
            "A contact phone number is required for shipping.",
            code="required",
        )

    phone_number = to_python(phone, country)

    if not phone_number or not getattr(phone_number, 'country_code', None):
        raise ValidationError(
            "Could not parse phone number. Include the country prefix (e.g. +39 for Italy).",
            code="parse_error",
        )

    if not is_possible_number(phone_number):
        raise ValidationError(
            f"Phone number {phone} has the wrong length for its country prefix.",
            code="invalid_length",
        )

    return phone_number
