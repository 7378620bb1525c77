"""
Check-in tokens.

A token is HMAC-SHA256(secret, "member:lesson:date:attempt"): the server can
reproduce it for an audit, nobody without the secret can derive it from
the public booking details. ``attempt`` counts earlier bookings of the same
occurrence by the same member, so rebooking after a cancellation yields a
new token.
"""
import hashlib
import hmac
from datetime import date
from typing import Optional

from freegym.core.config import CHECKIN_TOKEN_SECRET
from freegym.core.exceptions import ConfigurationError


def _secret(secret: Optional[str]) -> bytes:
    secret = secret or CHECKIN_TOKEN_SECRET
    if not secret:
        raise ConfigurationError("CHECKIN_TOKEN_SECRET")
    return secret.encode()


def make_checkin_token(
    member_id: int,
    lesson_id: int,
    booking_date: date,
    attempt: int,
    secret: Optional[str] = None,
) -> str:
    message = f"{member_id}:{lesson_id}:{booking_date.isoformat()}:{attempt}".encode()
    return hmac.new(_secret(secret), message, hashlib.sha256).hexdigest()


def verify_checkin_token(
    token: str,
    member_id: int,
    lesson_id: int,
    booking_date: date,
    attempt: int,
    secret: Optional[str] = None,
) -> bool:
    """
    Entry point for the check-in desk: does ``token`` belong to this booking?

    Constant-time comparison against the token the server would issue.
    """
    expected = make_checkin_token(member_id, lesson_id, booking_date, attempt, secret)
    return hmac.compare_digest(expected, token or "")
