# backend/glamup/services/email.py
"""
Email Service for GlamUp

Sends HTML email through Resend, or logs it when the console provider is
configured (local development and tests).
"""

import logging
import re
from typing import Any, Dict, Optional

import resend

from ..core.config import settings
from ..core.exceptions import ServiceException

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails using Resend API."""

    def __init__(self, provider: Optional[str] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.provider = provider or settings.email_provider
        self.from_email = settings.email_from_address
        self.from_name = settings.email_from_name

        if self.provider == "resend":
            if not settings.resend_api_key:
                raise ServiceException("Resend API key not configured")
            resend.api_key = settings.resend_api_key

    @staticmethod
    def _html_to_text(html_content: str) -> str:
        """Plain-text alternative for better deliverability."""
        text = re.sub(r"<[^>]+>", "", html_content)
        return re.sub(r"\s+", " ", text).strip()

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an email.

        Returns:
            The provider response

        Raises:
            ServiceException: If email sending fails
        """
        sender = f"{self.from_name} <{self.from_email}>"
        email_data = {
            "from": sender,
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content or self._html_to_text(html_content),
        }

        if self.provider == "console":
            self.logger.info(f"[console email] to={to_email} subject={subject}")
            return {"id": "console", "status": "logged"}

        try:
            response = resend.Emails.send(email_data)
        except Exception as e:
            self.logger.error(f"Failed to send email to {to_email}: {str(e)}")
            raise ServiceException(f"Email sending failed: {str(e)}") from e

        self.logger.info(f"Email sent successfully to {to_email} - Subject: {subject}")
        return dict(response) if response else {}
