# backend/glamup/services/template_service.py
"""
Template rendering service for GlamUp.

Renders the Jinja2 email templates under ``glamup/templates``.
"""

from datetime import date, datetime, time
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from ..core.config import settings
from ..core.constants import BRAND_NAME

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


class TemplateService:
    """
    Centralized template rendering using Jinja2.

    Needs no database session, so unlike the other services it does not
    extend BaseService.
    """

    def __init__(self, template_dir: Optional[Path] = None):
        directory = template_dir or TEMPLATE_DIR
        self.logger = logging.getLogger(self.__class__.__name__)
        self.env = Environment(
            loader=FileSystemLoader(directory),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._register_custom_filters()
        self.logger.debug(f"Template service initialized with template directory: {directory}")

    def _register_custom_filters(self) -> None:
        def currency(value: Union[int, float, str], code: str = settings.default_currency) -> str:
            return f"{code} {float(value):,.2f}"

        def format_date(value: Union[date, str], format_str: str = "%d %B %Y") -> str:
            if isinstance(value, str):
                return value
            return value.strftime(format_str)

        def format_time(value: Union[time, datetime, str], format_str: str = "%I:%M %p") -> str:
            if isinstance(value, str):
                return value
            return value.strftime(format_str)

        self.env.filters["currency"] = currency
        self.env.filters["format_date"] = format_date
        self.env.filters["format_time"] = format_time

    def get_common_context(self) -> Dict[str, Any]:
        return {
            "brand_name": BRAND_NAME,
            "current_year": datetime.now().year,
            "support_email": settings.email_from_address,
        }

    def render_template(
        self, template_name: str, context: Optional[Dict[str, Any]] = None, **kwargs: Any
    ) -> str:
        """
        Render a template with the given context.

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound:
            self.logger.error(f"Template not found: {template_name}")
            raise

        full_context = self.get_common_context()
        if context:
            full_context.update(context)
        full_context.update(kwargs)
        return template.render(full_context)
