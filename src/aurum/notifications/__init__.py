"""Notification services for Aurum."""

from aurum.notifications.dispatcher import notify_consensus, notify_signal
from aurum.notifications.telegram import send_long_telegram, send_telegram

__all__ = ["notify_consensus", "notify_signal", "send_long_telegram", "send_telegram"]
