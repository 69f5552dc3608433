"""Configuration and logging for the harvest ledger service."""

from .config import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
