"""Onramp webhook receiver and push notification dispatch service."""

__version__ = "1.0.0"
