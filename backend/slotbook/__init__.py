"""Slotbook: slot availability and reservation service."""

__version__ = "0.1.0"
