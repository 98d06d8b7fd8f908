"""Authentication for the Marketo REST API."""

from .oauth2 import Authenticator, AuthError

__all__ = ["Authenticator", "AuthError"]
