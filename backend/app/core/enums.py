# backend/app/core/enums.py
"""
Core enums for the TuitionDesk backend.

This module contains enumeration types used throughout the application
for type safety and consistency.
"""

from enum import Enum


class OrgRole(str, Enum):
    """Roles a user can hold inside an organisation."""

    OWNER = "owner"
    ADMIN = "admin"
    FINANCE = "finance"
    TEACHER = "teacher"
    PARENT = "parent"


class MembershipStatus(str, Enum):
    """Lifecycle of an organisation membership."""

    ACTIVE = "active"
    INVITED = "invited"
    DISABLED = "disabled"
