"""Stripe webhook signature verification over the raw request body."""

import json
import time

import stripe

from edubilling.core.exceptions import InvalidPayloadError, InvalidSignatureError

DEFAULT_TOLERANCE = 300  # seconds


def _signed_timestamp(sig_header: str) -> int | None:
    for item in sig_header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                return int(value)
            except ValueError:
                return None
    return None


def verify_webhook(
    payload: bytes,
    sig_header: str | None,
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE,
) -> dict:
    """Verify a Stripe delivery and return the parsed event.

    The HMAC is checked against ``payload`` exactly as received; parsing
    happens only after the signature is accepted. Timestamps more than
    ``tolerance`` seconds in the past or the future are rejected.

    Raises:
        InvalidSignatureError: header missing/malformed, digest mismatch, body
            not UTF-8 (so not something Stripe signed), or
            timestamp outside ``tolerance``.
        InvalidPayloadError: signed body is not JSON describing an event.
    """
    if not sig_header:
        raise InvalidSignatureError("Missing Stripe-Signature header")

    try:
        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    except UnicodeDecodeError as e:
        # Stripe only signs UTF-8 JSON, so these bytes cannot carry a valid signature
        raise InvalidSignatureError("No signatures found matching the expected signature for payload") from e

    try:
        # Stripe only rejects stale timestamps; the future bound is checked below
        stripe.WebhookSignature.verify_header(body, sig_header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise InvalidSignatureError(str(e)) from e

    timestamp = _signed_timestamp(sig_header)
    if timestamp is None or abs(time.time() - timestamp) > tolerance:
        raise InvalidSignatureError("Timestamp outside the tolerance zone")

    try:
        event = json.loads(body)
    except ValueError as e:
        raise InvalidPayloadError(f"Invalid payload: {e}") from e

    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise InvalidPayloadError("Invalid payload: not a Stripe event object")

    return event
