# backend/glamup/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import appointments, business_appointments, client_appointments

__all__ = [
    "appointments",
    "business_appointments",
    "client_appointments",
]
