from typing import Optional

from ..config import DEVELOPMENT_ENVIRONMENTS, NotifierConfig, NotifierProvider
from ..exceptions import ConfigurationError
from .base import Notifier
from .log import LogNotifier
from .twilio import TwilioNotifier
from .vonage import VonageNotifier


def build_notifier(config: Optional[NotifierConfig] = None) -> Notifier:
    """Build the notifier selected by ``config.provider`` (default: from environment)."""
    config = config or NotifierConfig.from_env()

    if config.provider is NotifierProvider.TWILIO:
        if not config.twilio_account_sid or not config.twilio_auth_token:
            raise ConfigurationError("Twilio credentials not configured")
        if not config.sender_id and not config.twilio_messaging_service_sid:
            raise ConfigurationError("Twilio needs a sender id or messaging service sid")
        return TwilioNotifier(
            account_sid=config.twilio_account_sid,
            auth_token=config.twilio_auth_token,
            sender_id=config.sender_id,
            messaging_service_sid=config.twilio_messaging_service_sid,
            timeout=config.timeout,
            max_attempts=config.max_attempts,
        )

    if config.provider is NotifierProvider.VONAGE:
        if not config.vonage_api_key or not config.vonage_api_secret:
            raise ConfigurationError("Vonage credentials not configured")
        if not config.sender_id:
            raise ConfigurationError("Vonage needs a sender id")
        return VonageNotifier(
            api_key=config.vonage_api_key,
            api_secret=config.vonage_api_secret,
            sender_id=config.sender_id,
            timeout=config.timeout,
            max_attempts=config.max_attempts,
        )

    # LogNotifier writes message bodies, codes included, to the log
    if config.environment not in DEVELOPMENT_ENVIRONMENTS:
        raise ConfigurationError(
            "Log notifier is only allowed in development environments; set SMS_PROVIDER",
            details={"environment": config.environment},
        )
    return LogNotifier()
