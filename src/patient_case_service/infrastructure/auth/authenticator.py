"""Session token authentication.

The service has a single clinician identity. ``Authenticator`` is the
capability the API gate calls; a real identity provider can replace
``FixedCredentialAuthenticator`` without touching the case service.
"""

import hmac
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from patient_case_service.core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)


class Authenticator(ABC):
    """Issues and verifies signed, time-limited session tokens."""

    @abstractmethod
    def login(self, email: str, password: str) -> Optional[str]:
        """Return a session token for valid credentials, None otherwise."""
        pass

    @abstractmethod
    def verify(self, token: Optional[str]) -> str:
        """
        Resolve a session token to the caller's identity.

        Raises:
            UnauthorizedException: If the token is absent, invalid or expired
        """
        pass


class FixedCredentialAuthenticator(Authenticator):
    """Authenticator for one configured email/password pair, using JWTs."""

    def __init__(
        self,
        email: str,
        password: str,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=2),
    ):
        self.email = email
        self.password = password
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def login(self, email: str, password: str) -> Optional[str]:
        email_ok = hmac.compare_digest(email.encode(), self.email.encode())
        password_ok = hmac.compare_digest(password.encode(), self.password.encode())
        if not (email_ok and password_ok):
            logger.warning(f"Rejected login attempt for {email}")
            return None

        return self.issue_token(email)

    def issue_token(self, email: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {"email": email, "iat": now, "exp": now + self.ttl}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> str:
        if not token:
            raise UnauthorizedException("Unauthorized")

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise UnauthorizedException("Session expired")
        except jwt.InvalidTokenError:
            raise UnauthorizedException("Invalid token")

        email = payload.get("email")
        if not email:
            raise UnauthorizedException("Invalid token")
        return email
