"""
dataroom.errors

Error taxonomy shared by every layer.

Responsibilities:
- Name each failure class the service distinguishes (config, auth, permission,
  missing records, bad input, transfer, infrastructure).
- Carry the retry hint the API layer turns into status codes/headers.
"""

from __future__ import annotations


class DataRoomError(Exception):
    """Base class; `code` is the stable machine-readable identifier."""

    code: str = "error"
    retryable: bool = False


class ConfigurationError(DataRoomError):
    # Fatal at startup; surfaced once by the app factory.
    code = "configuration_error"


class AuthError(DataRoomError):
    code = "auth_error"
    retryable = True


class PermissionDenied(DataRoomError):
    code = "permission_denied"


class NotFound(DataRoomError):
    code = "not_found"


class InvalidRequest(DataRoomError):
    code = "invalid_request"


class PayloadTooLarge(InvalidRequest):
    code = "payload_too_large"


class TransferError(DataRoomError):
    # A fresh upload session is required; nothing retries automatically.
    code = "transfer_error"


class InfrastructureError(DataRoomError):
    code = "infrastructure_error"
    retryable = True


# --- Module Notes -----------------------------------------------------------
# Only `dataroom.api.errors` maps these to HTTP; services raise them unchanged.
