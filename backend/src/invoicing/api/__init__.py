"""
API package - HTTP surface over the invoicing services.
"""
