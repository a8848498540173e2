"""
System preference use cases.

Only the invoice number format is managed here; the template is validated
before it is stored so the generator never sees an incomplete one.
"""

import logging

from sqlalchemy.orm import Session

from invoicing.config import Settings, get_settings
from invoicing.domain.numbering import validate_template
from invoicing.infrastructure.repositories import (
    INVOICE_NUMBER_FORMAT_KEY,
    PreferenceRepository,
)

logger = logging.getLogger(__name__)


class PreferenceService:
    def __init__(self, session: Session, settings: Settings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.preferences = PreferenceRepository(session, self.settings.invoice_number_format)

    def get_number_format(self) -> str:
        return self.preferences.get_template()

    def set_number_format(self, template: str) -> str:
        """
        Store a new invoice number template.

        Raises:
            InvalidTemplate: If {year}, {month} or {number} is missing
        """
        template = template.strip()
        validate_template(template)
        self.preferences.set(INVOICE_NUMBER_FORMAT_KEY, template)
        self.session.commit()
        return template
