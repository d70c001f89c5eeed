# backend/app/api/dependencies/auth.py
"""
Authentication dependencies.

Routes depend on ``get_current_user`` for the caller's user id; token
decoding lives in ``app.auth``.
"""

from ...auth import get_current_user

__all__ = ["get_current_user"]
