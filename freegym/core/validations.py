import re
from freegym.core.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def clean_phone_number(phone: str) -> str:
    """
    Strip a phone number down to its digits and validate it.
    """
    if not phone:
        raise ValidationError("Phone number cannot be empty")

    clean_phone = re.sub(r"\D", "", phone)

    if not clean_phone:
        raise ValidationError("Phone number must contain digits")

    if len(clean_phone) < 7 or len(clean_phone) > 20:
        raise ValidationError("Phone number must be between 7 and 20 digits")

    return clean_phone


def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address", {"email": email})
    return email


def normalize_referral_code(code: str) -> str:
    """Referral codes are matched case-insensitively"""
    return (code or "").strip().upper()
