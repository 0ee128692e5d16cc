"""
Phone Auth Configuration
========================
Dataclass configs with environment-variable constructors.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import structlog

from .exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

# Environments where issued codes are also written to the log
DEVELOPMENT_ENVIRONMENTS = frozenset({"local", "development", "testing"})

DEFAULT_MESSAGE_TEMPLATE = "Your OTP is: {code}"


class ReissuePolicy(str, Enum):
    """What happens to earlier active codes when a new one is issued for a phone."""
    INVALIDATE = "invalidate"
    ALLOW_MULTIPLE = "allow_multiple"


class NotifierProvider(str, Enum):
    LOG = "log"
    TWILIO = "twilio"
    VONAGE = "vonage"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer", details={"value": raw})


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number", details={"value": raw})


@dataclass
class OTPConfig:
    """Configuration for OTP issuance and verification."""
    otp_length: int = 6
    otp_expiry: int = 5  # minutes
    reissue_policy: ReissuePolicy = ReissuePolicy.INVALIDATE
    delivery_timeout: float = 10.0  # seconds
    message_template: str = DEFAULT_MESSAGE_TEMPLATE
    environment: str = "production"

    def __post_init__(self):
        if isinstance(self.reissue_policy, str):
            try:
                self.reissue_policy = ReissuePolicy(self.reissue_policy.lower())
            except ValueError:
                raise ConfigurationError(
                    "Unknown OTP reissue policy",
                    details={"value": self.reissue_policy},
                )
        if self.otp_length < 1:
            raise ConfigurationError("otp_length must be at least 1", details={"value": self.otp_length})
        if self.otp_length < 4:
            logger.warning("Short OTP length configured", otp_length=self.otp_length)
        if self.otp_expiry < 1:
            raise ConfigurationError("otp_expiry must be a positive number of minutes", details={"value": self.otp_expiry})
        if self.delivery_timeout <= 0:
            raise ConfigurationError("delivery_timeout must be positive", details={"value": self.delivery_timeout})
        if "{code}" not in self.message_template:
            raise ConfigurationError("message_template must contain a {code} placeholder")
        self.environment = self.environment.lower()

    @property
    def log_codes(self) -> bool:
        """Whether issued codes are echoed to the log (never in production-like environments)."""
        return self.environment in DEVELOPMENT_ENVIRONMENTS

    def render_message(self, code: str) -> str:
        return self.message_template.format(code=code)

    @classmethod
    def from_env(cls) -> "OTPConfig":
        return cls(
            otp_length=_env_int("OTP_LENGTH", 6),
            otp_expiry=_env_int("OTP_EXPIRY_MINUTES", 5),
            reissue_policy=os.getenv("OTP_REISSUE_POLICY", ReissuePolicy.INVALIDATE.value),
            delivery_timeout=_env_float("OTP_DELIVERY_TIMEOUT", 10.0),
            message_template=os.getenv("OTP_MESSAGE_TEMPLATE", DEFAULT_MESSAGE_TEMPLATE),
            environment=os.getenv("ENVIRONMENT", "production"),
        )


@dataclass
class NotifierConfig:
    """Configuration for the SMS notifier."""
    provider: NotifierProvider = NotifierProvider.LOG
    sender_id: str = ""
    timeout: float = 10.0
    max_attempts: int = 2
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_messaging_service_sid: Optional[str] = None
    vonage_api_key: Optional[str] = None
    vonage_api_secret: Optional[str] = None
    environment: str = "production"

    def __post_init__(self):
        if isinstance(self.provider, str):
            try:
                self.provider = NotifierProvider(self.provider.lower())
            except ValueError:
                raise ConfigurationError("Unknown SMS provider", details={"value": self.provider})
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        self.environment = self.environment.lower()

    @classmethod
    def from_env(cls) -> "NotifierConfig":
        return cls(
            provider=os.getenv("SMS_PROVIDER", NotifierProvider.LOG.value),
            sender_id=os.getenv("SMS_SENDER_ID", ""),
            timeout=_env_float("SMS_TIMEOUT", 10.0),
            max_attempts=_env_int("SMS_MAX_ATTEMPTS", 2),
            twilio_account_sid=os.getenv("TWILIO_ACCOUNT_SID"),
            twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN"),
            twilio_messaging_service_sid=os.getenv("TWILIO_MESSAGING_SERVICE_SID"),
            vonage_api_key=os.getenv("VONAGE_API_KEY"),
            vonage_api_secret=os.getenv("VONAGE_API_SECRET"),
            environment=os.getenv("ENVIRONMENT", "production"),
        )


@dataclass
class TokenConfig:
    """Configuration for bearer credential issuance."""
    secret: str
    ttl_seconds: int = 60 * 60 * 24

    def __post_init__(self):
        if not self.secret:
            raise ConfigurationError("Token secret must not be empty")
        if self.ttl_seconds < 1:
            raise ConfigurationError("ttl_seconds must be positive")

    @classmethod
    def from_env(cls) -> "TokenConfig":
        secret = os.getenv("AUTH_TOKEN_SECRET", "")
        if not secret:
            raise ConfigurationError("AUTH_TOKEN_SECRET is not set")
        return cls(
            secret=secret,
            ttl_seconds=_env_int("AUTH_TOKEN_TTL_SECONDS", 60 * 60 * 24),
        )
