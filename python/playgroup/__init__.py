"""Playgroup: weekly album voting, listening and reviews."""

__version__ = "0.1.0"
