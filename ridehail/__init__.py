"""Ride hailing core: ride store, lifecycle rules and polling views."""

__version__ = "1.0.0"
