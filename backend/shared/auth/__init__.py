"""Participant identity: signed tickets issued by the account service."""

from shared.auth.ticket import (
    TICKET_TTL_SECONDS,
    ParticipantTicket,
    create_signed_ticket,
    sign_ticket,
    verify_ticket,
)

__all__ = [
    "TICKET_TTL_SECONDS",
    "ParticipantTicket",
    "create_signed_ticket",
    "sign_ticket",
    "verify_ticket",
]
