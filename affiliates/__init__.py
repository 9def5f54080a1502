"""
Affiliate Registry Service
==========================

Membership records for a mutual-aid association:
- PostgreSQL as single source of truth
- FastAPI for lookup, credential and admin endpoints
- Append-only audit log written in the same transaction as each mutation
- PDF membership credentials rendered with reportlab
"""

__version__ = "1.0.0"
__author__ = "Affiliate Registry Team"
