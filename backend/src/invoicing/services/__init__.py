"""
Services package - Use cases that combine the invoicing core with storage.
"""

from .invoices import InvoiceService
from .preferences import PreferenceService

__all__ = ["InvoiceService", "PreferenceService"]
