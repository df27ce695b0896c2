"""HMAC-SHA256 signed participant tickets.

The account service signs a ticket after login; the arena verifies it
locally with the shared secret when a WebSocket connects or an admin HTTP
request arrives, so no identity lookup happens on the hot path.

Token format: base64url(json_payload_bytes).base64url(hmac_sha256_signature)
"""

import base64
import binascii
import hashlib
import hmac
import json
import math
import time
from dataclasses import asdict, dataclass

import structlog

logger = structlog.get_logger()

_TOKEN_PARTS = 2  # base64url(payload).base64url(signature)

TICKET_TTL_SECONDS = 86400  # 24 hours
CLOCK_SKEW_SECONDS = 60


@dataclass
class ParticipantTicket:
    """Identity claims carried inside a signed ticket."""

    user_id: str
    username: str
    avatar: str
    is_admin: bool
    issued_at: float
    expires_at: float


def create_signed_ticket(
    user_id: str,
    username: str,
    secret: str,
    *,
    avatar: str = "",
    is_admin: bool = False,
) -> str:
    """Create and sign a ticket valid for TICKET_TTL_SECONDS."""
    now = time.time()
    ticket = ParticipantTicket(
        user_id=user_id,
        username=username,
        avatar=avatar,
        is_admin=is_admin,
        issued_at=now,
        expires_at=now + TICKET_TTL_SECONDS,
    )
    return sign_ticket(ticket, secret)


def sign_ticket(ticket: ParticipantTicket, secret: str) -> str:
    payload_bytes = json.dumps(asdict(ticket), sort_keys=True).encode()
    sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    payload_b64 = base64.urlsafe_b64encode(payload_bytes).decode()
    sig_b64 = base64.urlsafe_b64encode(sig).decode()
    return f"{payload_b64}.{sig_b64}"


def verify_ticket(token: str, secret: str) -> ParticipantTicket | None:
    """Verify signature, claim types and expiry. Returns None on any failure."""
    parts = token.split(".")
    if len(parts) != _TOKEN_PARTS:
        return None

    try:
        payload_bytes = base64.urlsafe_b64decode(parts[0])
        provided_sig = base64.urlsafe_b64decode(parts[1])
    except (ValueError, binascii.Error):
        return None

    expected_sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    if not hmac.compare_digest(provided_sig, expected_sig):
        logger.debug("ticket signature mismatch")
        return None

    try:
        data = json.loads(payload_bytes)
        ticket = ParticipantTicket(**data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError, KeyError):
        logger.debug("ticket malformed payload")
        return None

    if not _validate_claims(ticket):
        return None

    return ticket


def _is_finite_number(value: object) -> bool:
    """Check that a value is a finite int or float (excluding bool)."""
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validate_claims(ticket: ParticipantTicket) -> bool:
    """Validate claim types and temporal claims.

    Identity fields must be non-empty strings (avatar may be empty) and
    is_admin a real bool. issued_at may not be in the future beyond the
    clock skew, the lifetime may not exceed the TTL, and the ticket must
    not have expired.
    """
    if not isinstance(ticket.user_id, str) or not ticket.user_id:
        logger.debug("ticket missing user_id")
        return False
    if not isinstance(ticket.username, str) or not ticket.username:
        logger.debug("ticket missing username")
        return False
    if not isinstance(ticket.avatar, str) or not isinstance(ticket.is_admin, bool):
        logger.debug("ticket malformed claims")
        return False

    if not _is_finite_number(ticket.issued_at) or not _is_finite_number(ticket.expires_at):
        logger.debug("ticket non-finite timestamp")
        return False

    now = time.time()

    if ticket.issued_at > now + CLOCK_SKEW_SECONDS:
        logger.debug("ticket issued in the future")
        return False

    if ticket.expires_at <= ticket.issued_at:
        logger.debug("ticket expires_at <= issued_at")
        return False

    lifetime = ticket.expires_at - ticket.issued_at
    if lifetime > TICKET_TTL_SECONDS + CLOCK_SKEW_SECONDS:
        logger.debug("ticket lifetime too long")
        return False

    if now > ticket.expires_at:
        logger.debug("ticket expired")
        return False

    return True
