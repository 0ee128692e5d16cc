"""
Credential Issuance
===================
Opaque bearer credentials issued after a successful OTP verification.
"""

import base64
import hashlib
import hmac
import json
import secrets
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional
import structlog

from .config import TokenConfig

logger = structlog.get_logger(__name__)


class CredentialIssuer(ABC):
    """Produces and checks bearer credentials for verified identities."""

    @abstractmethod
    def issue(self, identity: str) -> str:
        """Issue a credential for ``identity``."""

    @abstractmethod
    def verify(self, token: str) -> Optional[dict]:
        """Return the credential payload, or None if invalid, expired or revoked."""

    @abstractmethod
    def revoke(self, token: str) -> None:
        """Revoke a credential. Unknown or invalid tokens are ignored."""


class SignedTokenIssuer(CredentialIssuer):
    """
    HMAC-SHA256 signed tokens of the form ``<payload_b64>.<signature>``.

    Revocations are kept in memory until the token would have expired.
    Use a shared store for revocations when running several workers.
    """

    VERSION = "1"

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 60 * 60 * 24,
        clock: Callable[[], float] = time.time,
    ):
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._revoked: Dict[str, float] = {}

    @classmethod
    def from_config(cls, config: TokenConfig) -> "SignedTokenIssuer":
        return cls(secret=config.secret, ttl_seconds=config.ttl_seconds)

    def _sign(self, payload_b64: str) -> str:
        return hmac.new(
            self.secret.encode(),
            payload_b64.encode(),
            hashlib.sha256,
        ).hexdigest()

    def issue(self, identity: str) -> str:
        """
        Generate a signed token for a verified identity.

        Args:
            identity: Subject (customer id)

        Returns:
            Signed bearer token
        """
        now = int(self._clock())
        payload = {
            "sub": str(identity),
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + self.ttl_seconds,
            "ver": self.VERSION,
        }

        payload_json = json.dumps(payload, separators=(',', ':'))
        payload_b64 = base64.urlsafe_b64encode(payload_json.encode()).decode()

        logger.info("Credential issued", subject=payload["sub"], jti=payload["jti"][:8])
        return f"{payload_b64}.{self._sign(payload_b64)}"

    def _decode(self, token: str) -> Optional[dict]:
        """Check the signature and expiry; revocation is checked by callers."""
        if not token or not isinstance(token, str):
            return None
        # Issued tokens are base64url + hex; compare_digest rejects non-ASCII str
        if not token.isascii():
            return None
        parts = token.split('.')
        if len(parts) != 2:
            return None

        payload_b64, signature = parts
        if not hmac.compare_digest(signature, self._sign(payload_b64)):
            return None

        try:
            payload = json.loads(base64.urlsafe_b64decode(payload_b64.encode()).decode())
        except ValueError:
            return None
        if not isinstance(payload, dict) or "sub" not in payload or "jti" not in payload:
            return None

        if self._clock() >= payload.get("exp", 0):
            return None
        return payload

    def verify(self, token: str) -> Optional[dict]:
        payload = self._decode(token)
        if payload is None:
            return None
        if payload["jti"] in self._revoked:
            logger.warning("Revoked credential presented", jti=payload["jti"][:8])
            return None
        return payload

    def revoke(self, token: str) -> None:
        payload = self._decode(token)
        if payload is None:
            return
        self._cleanup()
        self._revoked[payload["jti"]] = float(payload["exp"])
        logger.info("Credential revoked", subject=payload["sub"], jti=payload["jti"][:8])

    def _cleanup(self) -> None:
        """Drop revocations for tokens that have expired anyway."""
        now = self._clock()
        expired = [jti for jti, exp in self._revoked.items() if exp <= now]
        for jti in expired:
            del self._revoked[jti]
