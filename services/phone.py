# services/phone.py

import phonenumbers
from phonenumbers import NumberParseException

DEFAULT_REGION = "BR"


def normalize_phone(raw: str, region: str = DEFAULT_REGION) -> str | None:
    """
    Canonical international form without the leading '+'.
    '11999998888' -> '5511999998888'. Returns None instead of guessing.
    """
    if not raw or not isinstance(raw, str):
        return None

    try:
        number = phonenumbers.parse(raw, region, keep_raw_input=True)
    except NumberParseException:
        return None

    if not phonenumbers.is_valid_number(number):
        return None

    e164 = phonenumbers.format_number(number, phonenumbers.PhoneNumberFormat.E164)
    return e164.lstrip("+")
