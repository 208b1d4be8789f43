"""User challenge state machine.

States: (absent) -> active -> completed | abandoned
completed and abandoned are terminal.
"""

from __future__ import annotations

from tradeya.errors import AlreadyCompleted, InvalidState

ABSENT = "absent"

VALID_TRANSITIONS: dict[str, list[str]] = {
    ABSENT: ["active"],
    "active": ["completed", "abandoned"],
    "completed": [],  # terminal
    "abandoned": [],  # terminal
}


def can_transition(current: str, target: str) -> bool:
    return target in VALID_TRANSITIONS.get(current, [])


def validate_transition(current: str, target: str) -> None:
    """Raise the domain error for an invalid user challenge transition."""
    if can_transition(current, target):
        return
    if current == "completed" and target == "completed":
        raise AlreadyCompleted()
    raise InvalidState(f"Invalid transition: cannot move challenge from '{current}' to '{target}'")
