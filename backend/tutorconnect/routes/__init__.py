# backend/tutorconnect/routes/__init__.py
"""
HTTP routes.

All business logic is delegated to the service layer.
"""

from . import admin, auth, bookings, students, tutors

__all__ = ["admin", "auth", "bookings", "students", "tutors"]
