"""
Multi-tenant survey service.
"""

__version__ = "1.0.0"
