"""Matchday: live match events, fan-out, standings and generated news."""

__version__ = "1.0.0"
