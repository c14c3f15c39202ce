"""Authentication package."""

from .authenticator import Authenticator, FixedCredentialAuthenticator

__all__ = ["Authenticator", "FixedCredentialAuthenticator"]
