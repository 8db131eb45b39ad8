"""Email subjects and bodies for each notification template, rendered with Jinja2."""

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from edubilling.billing.schemas import Notification, NotificationTemplate
from edubilling.core.config import Settings, get_settings

_TEMPLATE_DIR = Path(__file__).parent / "templates"

DEFAULT_LANGUAGE = "en"

# (template, language) -> copy. Languages without copy fall back to English.
COPY: dict[tuple[NotificationTemplate, str], dict[str, str]] = {
    (NotificationTemplate.ACTIVATE, "en"): {
        "subject": "Your account has been activated",
        "heading": "Welcome aboard",
        "body": "Your payment has been received and your account is now active.",
        "cta": "Log in",
    },
    (NotificationTemplate.ACTIVATE, "cy"): {
        "subject": "Mae eich cyfrif wedi'i actifadu",
        "heading": "Croeso",
        "body": "Rydym wedi derbyn eich taliad ac mae eich cyfrif bellach yn weithredol.",
        "cta": "Mewngofnodi",
    },
    (NotificationTemplate.TRIAL_EXPIRED, "en"): {
        "subject": "Your free trial has ended",
        "heading": "Your trial has ended",
        "body": "Your 7 day free trial has finished. Subscribe to keep using your resources.",
        "cta": "Choose a subscription",
    },
    (NotificationTemplate.TRIAL_EXPIRED, "cy"): {
        "subject": "Mae eich treial am ddim wedi dod i ben",
        "heading": "Mae eich treial wedi dod i ben",
        "body": "Mae eich treial 7 diwrnod am ddim wedi gorffen. Tanysgrifiwch i barhau.",
        "cta": "Dewis tanysgrifiad",
    },
    (NotificationTemplate.SUBSCRIPTION_EXPIRED, "en"): {
        "subject": "Your subscription has expired",
        "heading": "Your subscription has expired",
        "body": "Your annual subscription has come to an end. Renew to restore access.",
        "cta": "Renew subscription",
    },
    (NotificationTemplate.SUBSCRIPTION_EXPIRED, "cy"): {
        "subject": "Mae eich tanysgrifiad wedi dod i ben",
        "heading": "Mae eich tanysgrifiad wedi dod i ben",
        "body": "Mae eich tanysgrifiad blynyddol wedi dod i ben. Adnewyddwch i gael mynediad eto.",
        "cta": "Adnewyddu",
    },
}


@dataclass
class RenderedEmail:
    subject: str
    html: str
    text: str


class EmailRenderer:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.env = Environment(
            loader=FileSystemLoader(_TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def _copy(self, template: NotificationTemplate, language: str) -> dict[str, str]:
        copy = COPY.get((template, language)) or COPY.get((template, DEFAULT_LANGUAGE))
        if copy is None:
            raise KeyError(f"No copy for template '{template.value}'")
        return copy

    def login_url(self) -> str:
        return f"{self.settings.frontend_url.rstrip('/')}/{self.settings.user_login_path.lstrip('/')}"

    def logo_url(self) -> str:
        return f"{self.settings.app_url.rstrip('/')}/{self.settings.logo_path.lstrip('/')}"

    def render(self, notification: Notification) -> RenderedEmail:
        copy = self._copy(notification.template, notification.language)
        context = {
            **copy,
            "email": notification.recipient,
            "login_url": self.login_url(),
            "logo_url": self.logo_url(),
            "app_name": self.settings.app_name,
            "language": notification.language,
        }
        html = self.env.get_template("notification.html").render(**context)
        text = self.env.get_template("notification.txt").render(**context)
        return RenderedEmail(subject=copy["subject"], html=html, text=text)
