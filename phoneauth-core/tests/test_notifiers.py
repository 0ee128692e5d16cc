"""
Tests for SMS notifiers.
"""

import asyncio

import httpx
import pytest

from phoneauth_core.config import NotifierConfig
from phoneauth_core.exceptions import ConfigurationError, DeliveryFailure
from phoneauth_core.notifier import (
    LogNotifier,
    MessageStatus,
    TwilioNotifier,
    VonageNotifier,
    build_notifier,
)


def _transport(handler, calls):
    def recording(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)
    return httpx.MockTransport(recording)


class TestTwilioNotifier:

    @pytest.mark.asyncio
    async def test_send_success(self):
        """Should post to Messages.json and report the message sid."""
        calls = []
        transport = _transport(
            lambda request: httpx.Response(201, json={"sid": "SM123", "status": "queued", "num_segments": "1"}),
            calls,
        )
        notifier = TwilioNotifier("AC123", "token", sender_id="+15550001111", transport=transport)

        result = await notifier.send("+15551234567", "Your OTP is: 123456")
        await notifier.close()

        assert result.success is True
        assert result.provider_message_id == "SM123"
        assert result.status is MessageStatus.PENDING
        request = calls[0]
        assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
        assert request.headers["Authorization"].startswith("Basic ")
        body = request.content.decode()
        assert "To=%2B15551234567" in body
        assert "From=%2B15550001111" in body

    @pytest.mark.asyncio
    async def test_messaging_service_sid(self):
        """Should send with the messaging service instead of a From number."""
        calls = []
        transport = _transport(lambda request: httpx.Response(201, json={"sid": "SM1"}), calls)
        notifier = TwilioNotifier("AC123", "token", messaging_service_sid="MG42", transport=transport)

        await notifier.send("+15551234567", "hi")

        body = calls[0].content.decode()
        assert "MessagingServiceSid=MG42" in body
        assert "From=" not in body

    @pytest.mark.asyncio
    async def test_send_rejected(self):
        """Should return an unsuccessful result for API errors."""
        transport = _transport(
            lambda request: httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"}),
            [],
        )
        notifier = TwilioNotifier("AC123", "token", sender_id="+15550001111", transport=transport)

        result = await notifier.send("+15551234567", "hi")

        assert result.success is False
        assert result.error_code == "21211"
        assert result.status is MessageStatus.FAILED

    @pytest.mark.asyncio
    async def test_transport_error_retried_then_raised(self):
        """Should retry connect errors and then raise DeliveryFailure."""
        calls = []

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        notifier = TwilioNotifier(
            "AC123", "token", sender_id="+15550001111",
            max_attempts=2, transport=_transport(refuse, calls),
        )

        with pytest.raises(DeliveryFailure) as exc_info:
            await notifier.send("+15551234567", "hi")

        assert len(calls) == 2
        assert exc_info.value.provider == "twilio"

    @pytest.mark.asyncio
    async def test_concurrent_first_sends_share_client(self):
        """Parallel first sends should create a single HTTP client."""

        class SlowStartTwilio(TwilioNotifier):
            initialized = 0

            async def initialize(self):
                self.initialized += 1
                await asyncio.sleep(0)
                await super().initialize()

        transport = _transport(lambda request: httpx.Response(201, json={"sid": "SM1"}), [])
        notifier = SlowStartTwilio("AC123", "token", sender_id="+15550001111", transport=transport)

        results = await asyncio.gather(*(notifier.send("+15551234567", "hi") for _ in range(5)))
        await notifier.close()

        assert all(result.success for result in results)
        assert notifier.initialized == 1


class TestVonageNotifier:

    @pytest.mark.asyncio
    async def test_send_success(self):
        calls = []
        transport = _transport(
            lambda request: httpx.Response(
                200,
                json={"message-count": "1", "messages": [{"status": "0", "message-id": "0A0000"}]},
            ),
            calls,
        )
        notifier = VonageNotifier("key", "secret", sender_id="PhoneAuth", transport=transport)

        result = await notifier.send("+15551234567", "Your OTP is: 123456")

        assert result.success is True
        assert result.provider_message_id == "0A0000"
        body = calls[0].content.decode()
        assert "to=15551234567" in body
        assert "type=text" in body

    @pytest.mark.asyncio
    async def test_send_rejected(self):
        """Non-zero message status should be an unsuccessful result."""
        transport = _transport(
            lambda request: httpx.Response(
                200,
                json={"messages": [{"status": "4", "error-text": "Bad Credentials"}]},
            ),
            [],
        )
        notifier = VonageNotifier("key", "bad", sender_id="PhoneAuth", transport=transport)

        result = await notifier.send("+15551234567", "hi")

        assert result.success is False
        assert result.error_code == "4"
        assert result.error_message == "Bad Credentials"


class TestLogNotifier:

    @pytest.mark.asyncio
    async def test_send(self):
        result = await LogNotifier().send("+15551234567", "Your OTP is: 123456")

        assert result.success is True
        assert result.provider_message_id.startswith("log-")


class TestBuildNotifier:

    def test_default_is_log_in_development(self):
        assert isinstance(build_notifier(NotifierConfig(environment="development")), LogNotifier)

    @pytest.mark.parametrize("environment", ["production", "staging"])
    def test_log_refused_outside_development(self, environment):
        """Message bodies carry codes, so the log notifier is development only."""
        with pytest.raises(ConfigurationError):
            build_notifier(NotifierConfig(environment=environment))

    def test_twilio(self):
        config = NotifierConfig(
            provider="twilio",
            sender_id="+15550001111",
            twilio_account_sid="AC123",
            twilio_auth_token="token",
        )

        notifier = build_notifier(config)

        assert isinstance(notifier, TwilioNotifier)
        assert notifier.account_sid == "AC123"

    def test_vonage(self):
        config = NotifierConfig(
            provider="vonage",
            sender_id="PhoneAuth",
            vonage_api_key="key",
            vonage_api_secret="secret",
        )

        assert isinstance(build_notifier(config), VonageNotifier)

    @pytest.mark.parametrize("config", [
        NotifierConfig(provider="twilio", sender_id="+15550001111"),
        NotifierConfig(provider="twilio", twilio_account_sid="AC123", twilio_auth_token="token"),
        NotifierConfig(provider="vonage", vonage_api_key="key", vonage_api_secret="secret"),
    ])
    def test_missing_settings(self, config):
        with pytest.raises(ConfigurationError):
            build_notifier(config)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            NotifierConfig(provider="carrier-pigeon")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SMS_PROVIDER", "log")
        monkeypatch.setenv("ENVIRONMENT", "local")

        assert isinstance(build_notifier(), LogNotifier)

    def test_from_env_defaults_refuse_log(self, monkeypatch):
        """No provider and no environment configured must not log codes."""
        monkeypatch.delenv("SMS_PROVIDER", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)

        with pytest.raises(ConfigurationError):
            build_notifier()
