"""
Exception taxonomy for the OAuth integration flow.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ConnectorError(Exception):
    """Base class for every error raised by the connectors package."""


class ConfigurationError(ConnectorError):
    """Fatal misconfiguration (missing encryption key, missing client credentials)."""


class InvalidProviderError(ConnectorError):
    """The requested provider id is not one of the supported integrations."""

    def __init__(self, provider: Optional[str], valid: list[str]) -> None:
        self.provider = provider
        self.valid = valid
        super().__init__(f"Invalid provider. Valid: {', '.join(valid)}")


# ── Cryptographic errors ────────────────────────────────────────────────


class TokenDecryptionError(ConnectorError):
    """A stored token exists but cannot be read; the user must re-connect."""


class MalformedCiphertextError(TokenDecryptionError):
    """Blob is not base64 or too short to hold nonce + tag."""


class TokenAuthenticationError(TokenDecryptionError):
    """GCM tag verification failed (tampered blob or wrong key)."""


# ── Callback failures ───────────────────────────────────────────────────


class CallbackReason(str, Enum):
    """Reason codes carried back to the dashboard as ``?error=<code>``."""

    PROVIDER_DENIED = "provider_denied"
    INVALID_STATE = "invalid_state"
    MISSING_PROVIDER = "missing_provider"
    AUTH_MISMATCH = "auth_mismatch"
    MISSING_PARAMS = "missing_params"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    NO_ACCESS_TOKEN = "no_access_token"
    SERVER_ERROR = "server_error"


class CallbackFailure(ConnectorError):
    """
    Terminal ``Failed(reason)`` state of a callback.

    ``detail`` holds the provider's own error string when there is one.
    For denials and token-exchange failures it replaces the generic code
    in the redirect, so ``error=access_denied`` reaches the dashboard
    as-is.  It is untrusted text.
    """

    def __init__(self, reason: CallbackReason, detail: Optional[str] = None) -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)

    @property
    def error_code(self) -> str:
        if self.detail and self.reason in (
            CallbackReason.PROVIDER_DENIED,
            CallbackReason.TOKEN_EXCHANGE_FAILED,
        ):
            return self.detail
        return self.reason.value
