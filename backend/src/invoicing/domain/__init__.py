"""
Domain package - Core business logic with no external dependencies.

This package contains the invoice data model, the status state machine,
the VAT/money calculation engine and the invoice number generator.
"""
