"""Re-export all models so Base.metadata sees them."""

from edubilling.db.models.admin_settings import AdminSettings
from edubilling.db.models.learning_resource import LearningResource
from edubilling.db.models.payment_intent import PaymentIntentRecord
from edubilling.db.models.subscription_history import SubscriptionHistoryRecord
from edubilling.db.models.trial import TrialRecord
from edubilling.db.models.user import User
from edubilling.db.models.user_subscription import UserSubscriptionRecord
from edubilling.db.models.webhook_event import WebhookEvent

__all__ = [
    "AdminSettings",
    "LearningResource",
    "PaymentIntentRecord",
    "SubscriptionHistoryRecord",
    "TrialRecord",
    "User",
    "UserSubscriptionRecord",
    "WebhookEvent",
]
