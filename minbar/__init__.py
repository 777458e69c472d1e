"""Minbar: mosque community companion (live khotba listening, schedule, sebha)."""

__version__ = "0.1.0"
