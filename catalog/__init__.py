"""
Library catalog core.

This package contains:
- Book, writer, review and user models
- MongoDB persistence with uniqueness enforcement
- Book, review, user and writer services
- Poster file storage
- Form binding and guard utilities
"""

__version__ = "1.0.0"
