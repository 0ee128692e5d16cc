"""
Phone Auth Flow
===============
Request-level orchestration of OTP login: validates input, drives the
OTP service and issues credentials for verified customers.

Usage:
    flow = AuthFlow(otp_service, customers, issuer)

    await flow.register("+15551234567", first_name="Ada")
    result = await flow.verify_otp("+15551234567", "042133")
    customer = await flow.require_verified(result.token)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
import structlog

from .credentials import CredentialIssuer
from .customers.models import Customer
from .customers.repository import CustomerRepository
from .exceptions import (
    AuthenticationError,
    CustomerNotFoundError,
    InvalidOtpError,
    PhoneNotVerifiedError,
    ValidationError,
)
from .otp.generator import is_well_formed
from .otp.service import OtpService
from .phone import mask_phone, require_phone
from .timeutils import utc_now

logger = structlog.get_logger(__name__)

OTP_SENT_MESSAGE = "OTP sent successfully."
MAX_NAME_LENGTH = 100


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful verification."""
    token: str
    customer: Customer


class AuthFlow:
    """Send, verify, register, login and logout over an OTP service."""

    def __init__(
        self,
        otp_service: OtpService,
        customers: CustomerRepository,
        issuer: CredentialIssuer,
        default_country: str = "1",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.otp_service = otp_service
        self.customers = customers
        self.issuer = issuer
        self.default_country = default_country
        self._clock = clock

    def _phone(self, phone: str) -> str:
        return require_phone(phone, self.default_country)

    def _code(self, code: str) -> str:
        digits = self.otp_service.config.otp_length
        code = code.strip() if isinstance(code, str) else code
        if not is_well_formed(code, digits):
            raise ValidationError(f"OTP must be {digits} digits.")
        return code

    @staticmethod
    def _name(value: Optional[str], field: str) -> str:
        value = (value or "").strip()
        if len(value) > MAX_NAME_LENGTH:
            raise ValidationError(f"{field} is too long.")
        return value

    async def send_otp(self, phone: str) -> str:
        """
        Issue an OTP for a phone number.

        Returns the same generic message whether or not delivery succeeded.
        """
        phone = self._phone(phone)
        await self.otp_service.generate(phone)
        return OTP_SENT_MESSAGE

    async def verify_otp(self, phone: str, code: str) -> AuthResult:
        """
        Verify a code, mark the customer's phone verified and issue a credential.

        Raises:
            ValidationError: Malformed phone or code
            InvalidOtpError: Code did not verify, for any reason
            CustomerNotFoundError: Phone verified but no customer owns it
        """
        phone = self._phone(phone)
        code = self._code(code)

        if not await self.otp_service.verify(phone, code):
            raise InvalidOtpError()

        customer = await self.customers.mark_phone_verified(phone, self._clock())
        if customer is None:
            logger.warning("Phone verified without a customer", phone=mask_phone(phone))
            raise CustomerNotFoundError("Phone verified, but customer not found.")

        token = self.issuer.issue(str(customer.id))
        logger.info("Customer authenticated", customer_id=customer.id)
        return AuthResult(token=token, customer=customer)

    async def register(
        self,
        phone: str,
        first_name: Optional[str] = "",
        last_name: Optional[str] = "",
    ) -> Customer:
        """Create an unverified customer and send them an OTP."""
        phone = self._phone(phone)
        customer = await self.customers.create(
            phone,
            first_name=self._name(first_name, "first_name"),
            last_name=self._name(last_name, "last_name"),
        )
        logger.info("Customer registered", customer_id=customer.id, phone=mask_phone(phone))
        await self.otp_service.generate(phone)
        return customer

    async def login(self, phone: str) -> str:
        """Send an OTP to an existing customer."""
        phone = self._phone(phone)
        if await self.customers.find_by_phone(phone) is None:
            raise CustomerNotFoundError()
        await self.otp_service.generate(phone)
        return OTP_SENT_MESSAGE

    def logout(self, token: str) -> None:
        """Revoke a bearer credential."""
        if self.issuer.verify(token) is None:
            raise AuthenticationError()
        self.issuer.revoke(token)

    async def authenticate(self, token: Optional[str]) -> Customer:
        """Resolve a bearer credential to its customer."""
        payload = self.issuer.verify(token) if token else None
        if payload is None:
            raise AuthenticationError()

        try:
            customer_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise AuthenticationError()

        customer = await self.customers.get(customer_id)
        if customer is None:
            raise AuthenticationError()
        return customer

    async def require_verified(self, token: Optional[str]) -> Customer:
        """Like authenticate, but also require a verified phone number."""
        customer = await self.authenticate(token)
        if not customer.phone_verified:
            raise PhoneNotVerifiedError()
        return customer
