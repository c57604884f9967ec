"""Outbound webhook notifications."""

from .client import WebhookNotifier

__all__ = ["WebhookNotifier"]
