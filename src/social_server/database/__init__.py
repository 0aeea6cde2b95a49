"""Database package for the social server."""

from .connection import Database

__all__ = ["Database"]
