"""
Legal status moves for referrals and appointments.

Every endpoint that changes a status asks this module first, so the
rules live in one table per model instead of in each view.
"""
from core.exceptions import TransitionError

REFERRAL_TRANSITIONS = {
    'pending': ['accepted', 'rejected', 'cancelled'],
    'accepted': ['in_transit', 'arrived', 'in_progress', 'cancelled'],
    'in_transit': ['arrived', 'cancelled'],
    'arrived': ['in_progress', 'cancelled'],
    'in_progress': ['completed', 'cancelled'],
    'completed': [],
    'rejected': [],
    'cancelled': [],
}

APPOINTMENT_TRANSITIONS = {
    'scheduled': ['confirmed', 'checked_in', 'cancelled', 'no_show', 'rescheduled'],
    'confirmed': ['checked_in', 'cancelled', 'no_show', 'rescheduled'],
    'checked_in': ['in_progress', 'completed', 'cancelled'],
    'in_progress': ['completed'],
    'completed': [],
    'cancelled': [],
    'no_show': [],
    'rescheduled': [],
}

_TABLES = {
    'referral': REFERRAL_TRANSITIONS,
    'appointment': APPOINTMENT_TRANSITIONS,
}


def can_transition(kind: str, current: str, new: str) -> bool:
    """Return True if a ``kind`` record may move from ``current`` to ``new``."""
    return new in _TABLES[kind].get(current, [])


def is_terminal(kind: str, current: str) -> bool:
    return not _TABLES[kind].get(current)


def allowed_next(kind: str, current: str) -> list[str]:
    return list(_TABLES[kind].get(current, []))


def ensure_transition(kind: str, current: str, new: str) -> None:
    if not can_transition(kind, current, new):
        raise TransitionError(current, new, kind)
