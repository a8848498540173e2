"""
Invoicing core - invoice status workflow, VAT calculation and invoice numbering.
"""

__version__ = "0.1.0"
