"""
Phone Auth HTTP Routes
======================
FastAPI router exposing the auth flow.

Usage:
    app.include_router(create_auth_router(flow), prefix="/api")
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field
import structlog

from .auth_flow import AuthFlow
from .exceptions import (
    AuthenticationError,
    CustomerNotFoundError,
    InvalidOtpError,
    PhoneNotVerifiedError,
    StorageFailure,
    ValidationError,
)

logger = structlog.get_logger(__name__)

# Shown instead of storage error details
SERVICE_UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again shortly."

bearer_scheme = HTTPBearer(auto_error=False)


class SendOtpRequest(BaseModel):
    phone: str = Field(..., description="Phone number, E.164 preferred")


class VerifyOtpRequest(BaseModel):
    phone: str = Field(..., description="Phone number the OTP was sent to")
    otp: str = Field(..., description="Numeric OTP code")


class RegisterRequest(BaseModel):
    phone: str
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""


class MessageResponse(BaseModel):
    message: str


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: str
    first_name: str
    last_name: str
    phone_verified: bool
    phone_verified_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    token: str
    customer: CustomerResponse


class RegisterResponse(BaseModel):
    message: str
    customer: CustomerResponse


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Map auth errors to HTTP responses with generic, non-enumerating messages."""
    try:
        yield
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"message": e.message})
    except InvalidOtpError as e:
        raise HTTPException(status_code=422, detail={"message": e.message})
    except CustomerNotFoundError as e:
        raise HTTPException(status_code=404, detail={"message": e.message})
    except AuthenticationError as e:
        raise HTTPException(
            status_code=401,
            detail={"message": e.message},
            headers={"WWW-Authenticate": "Bearer"},
        )
    except PhoneNotVerifiedError as e:
        raise HTTPException(status_code=403, detail={"message": e.message})
    except StorageFailure as e:
        logger.error("Auth request failed on storage", operation=e.operation, error=e.message)
        raise HTTPException(
            status_code=503,
            detail={"message": SERVICE_UNAVAILABLE_MESSAGE, "code": "STORAGE_UNAVAILABLE"},
        )


def _bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    return credentials.credentials if credentials else None


def create_auth_router(flow: AuthFlow, prefix: str = "/auth") -> APIRouter:
    """
    Create the phone auth router.

    Args:
        flow: Configured auth flow
        prefix: Route prefix (default: /auth)

    Returns:
        FastAPI router with send-otp, verify-otp, register, login, logout and me endpoints
    """
    router = APIRouter(prefix=prefix, tags=["Phone Auth"])

    @router.post("/send-otp", response_model=MessageResponse)
    async def send_otp(body: SendOtpRequest) -> MessageResponse:
        with _translate_errors():
            message = await flow.send_otp(body.phone)
        return MessageResponse(message=message)

    @router.post("/verify-otp", response_model=TokenResponse)
    async def verify_otp(body: VerifyOtpRequest) -> TokenResponse:
        with _translate_errors():
            result = await flow.verify_otp(body.phone, body.otp)
        return TokenResponse(
            token=result.token,
            customer=CustomerResponse.model_validate(result.customer),
        )

    @router.post("/register", response_model=RegisterResponse)
    async def register(body: RegisterRequest) -> RegisterResponse:
        with _translate_errors():
            customer = await flow.register(body.phone, body.first_name, body.last_name)
        return RegisterResponse(
            message="Customer registered. OTP sent.",
            customer=CustomerResponse.model_validate(customer),
        )

    @router.post("/login", response_model=MessageResponse)
    async def login(body: SendOtpRequest) -> MessageResponse:
        with _translate_errors():
            message = await flow.login(body.phone)
        return MessageResponse(message=message)

    @router.post("/logout", response_model=MessageResponse)
    async def logout(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> MessageResponse:
        with _translate_errors():
            token = _bearer_token(credentials)
            if token is None:
                raise AuthenticationError()
            flow.logout(token)
        return MessageResponse(message="Logged out successfully.")

    @router.get("/me", response_model=CustomerResponse)
    async def me(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> CustomerResponse:
        """Current customer; requires a verified phone number."""
        with _translate_errors():
            customer = await flow.require_verified(_bearer_token(credentials))
        return CustomerResponse.model_validate(customer)

    return router
