# backend/slotbook/core/enums.py
"""
Core enums for the booking engine.

Role names are carried in bearer tokens. The engine only distinguishes
between the people who own a bookable resource and the people who book it.
"""

from enum import Enum


class RoleName(str, Enum):
    """
    Roles a principal may hold.

    A provider owns one or more resources and confirms bookings against them.
    A client creates bookings for itself.
    """

    PROVIDER = "provider"
    CLIENT = "client"
