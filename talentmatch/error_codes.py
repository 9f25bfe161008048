from __future__ import annotations

# Centralized error codes to prevent drift

UNAUTHORIZED = "unauthorized"
INTERNAL = "internal"

# Public vocabulary for the <provider>_error redirect parameter
MISSING_PARAMS = "missing_params"
INVALID_STATE = "invalid_state"
STATE_EXPIRED = "state_expired"
SERVER_MISCONFIGURED = "server_misconfigured"
TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
SAVE_FAILED = "save_failed"
UNEXPECTED_ERROR = "unexpected_error"
