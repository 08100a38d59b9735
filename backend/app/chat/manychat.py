"""ManyChat dynamic block formatting for availability.

Response shape: ``{"version": "v2", "content": {"messages": [...]}}`` where
each choice becomes a reply button whose payload is the opaque slot value,
ready to be posted back as the ``slot`` of a hold request.
"""

from __future__ import annotations

from typing import Any

from app.scheduling.results import Availability


MANYCHAT_VERSION = "v2"
PICK_A_TIME_TEXT = "Select an available time:"
NO_TIMES_TEXT = "No available times for this date. Please choose another date."


def build_text_message(text: str) -> dict[str, Any]:
    return {
        "version": MANYCHAT_VERSION,
        "content": {"messages": [{"type": "text", "text": text}]},
    }


def build_availability_message(availability: Availability) -> dict[str, Any]:
    if not availability.choices:
        return build_text_message(NO_TIMES_TEXT)

    payload = build_text_message(PICK_A_TIME_TEXT)
    payload["content"]["messages"][0]["buttons"] = [
        {"type": "reply", "caption": choice.title, "payload": choice.value}
        for choice in availability.choices
    ]
    return payload
