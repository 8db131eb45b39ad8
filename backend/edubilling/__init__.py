"""Subscription billing core: Stripe webhooks, subscription state, expiry sweeps."""

__version__ = "0.1.0"
