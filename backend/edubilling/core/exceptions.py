class EduBillingError(Exception):
    """Base exception for the billing core."""

    pass


class WebhookVerificationError(EduBillingError):
    """Raised when an inbound webhook cannot be trusted or parsed."""

    response_key = "error"


class InvalidPayloadError(WebhookVerificationError):
    """Raised when the webhook body is not a well-formed event."""

    response_key = "invalidPayloadErr"


class InvalidSignatureError(WebhookVerificationError):
    """Raised when the Stripe-Signature header does not match the body."""

    response_key = "invalidSigErr"


class EmptyEventError(EduBillingError):
    """Raised when a verified event carries no data object."""

    pass


class UnmatchedPaymentError(EduBillingError):
    """Raised when a succeeded intent has no local payment record and the policy is 'error'."""

    def __init__(self, intent_id: str):
        self.intent_id = intent_id
        super().__init__(f"No payment record for intent '{intent_id}'")


class ResourceNotFoundError(EduBillingError):
    """Raised when a learning resource referenced by provisioning does not exist."""

    def __init__(self, resource_id: int):
        self.resource_id = resource_id
        super().__init__(f"Learning resource {resource_id} not found")


class NotificationError(EduBillingError):
    """Raised when a notification cannot be queued or delivered."""

    pass
