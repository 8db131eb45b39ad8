"""Notification queue, rendering, and delivery."""
