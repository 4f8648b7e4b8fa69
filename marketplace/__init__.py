"""Classifieds marketplace follow and ad-review API."""

__version__ = "1.0.0"
