"""
Infrastructure package - Database access for the invoicing core.
"""
