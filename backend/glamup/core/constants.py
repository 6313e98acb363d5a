# backend/glamup/core/constants.py
"""
Application-wide constants for GlamUp.
"""

BRAND_NAME = "GlamUp"

DEFAULT_CURRENCY = "INR"

# Shared appointment ids use digits and uppercase letters only
APPOINTMENT_ID_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

MINUTES_PER_DAY = 24 * 60
MIN_APPOINTMENT_DURATION_MINUTES = 5

# Pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Messages
TEAM_MEMBER_CONFLICT_MESSAGE = "The team member already has an appointment during this time"
CLIENT_CONFLICT_MESSAGE = "The client already has an appointment during this time"

# API metadata
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = f"Backend API for {BRAND_NAME} - appointment scheduling for salons and studios"
API_VERSION = "1.0.0"
