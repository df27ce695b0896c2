"""Test helpers for participant ticket authentication."""

import time

from shared.auth.ticket import TICKET_TTL_SECONDS, ParticipantTicket, sign_ticket

TEST_TICKET_SECRET = "test-secret"  # noqa: S105


def make_test_ticket(
    user_id: str = "test-user-id",
    username: str = "Player",
    *,
    avatar: str = "",
    is_admin: bool = False,
) -> str:
    """Create a valid signed participant ticket for tests."""
    now = time.time()
    ticket = ParticipantTicket(
        user_id=user_id,
        username=username,
        avatar=avatar,
        is_admin=is_admin,
        issued_at=now,
        expires_at=now + TICKET_TTL_SECONDS,
    )
    return sign_ticket(ticket, TEST_TICKET_SECRET)
