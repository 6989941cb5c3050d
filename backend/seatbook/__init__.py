"""Seat reservation and booking commit engine for scheduled bus trips."""

__version__ = "1.0.0"
