"""Folio - a Discord reader for remotely hosted image galleries."""

__version__ = "0.1.0"
