"""
Knowledge-point tagging for the error-book application.
"""
__version__ = "0.1.0"
