"""
Listing Watch

Periodically extracts listings from a public page, compares them against
the last stored snapshot and sends an email when they change.
"""

__version__ = "0.1.0"
__author__ = "Listing Watch Team"
