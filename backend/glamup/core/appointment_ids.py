"""Identifier helpers for appointments."""

import secrets
from typing import Optional

from .config import settings
from .constants import APPOINTMENT_ID_ALPHABET


def generate_appointment_id(length: Optional[int] = None) -> str:
    """Generate the short shared id carried by both mirrors of a booking."""
    size = length or settings.appointment_id_length
    return "".join(secrets.choice(APPOINTMENT_ID_ALPHABET) for _ in range(size))
