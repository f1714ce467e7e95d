"""
FastAPI RESTful API for the Library Catalog.

This module provides a REST API for:
- Book catalog browsing and administration
- Book reviews, one per user per book
- User role administration
- Bearer token authentication
"""
