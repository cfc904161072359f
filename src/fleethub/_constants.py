"""Internal constants shared across the library."""

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1"
FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"

DEFAULT_APP_ID = "default-app-id"
USER_AGENT = "fleethub/1 (aiohttp)"

# Firestore auto-id alphabet and length, matching the client SDKs.
AUTO_ID_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
AUTO_ID_LENGTH = 20

# Backend error statuses the listener treats as transient.
RETRYABLE_STATUSES: frozenset[str] = frozenset({"UNAVAILABLE", "DEADLINE_EXCEEDED", "INTERNAL", "ABORTED"})

# How far ahead a scheduled service counts as "due soon".
SERVICE_DUE_WINDOW_MONTHS = 2
