"""Crypto Market Notifier - scheduled market alerts for chat channels."""

__version__ = "0.1.0"
