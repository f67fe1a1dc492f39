"""Configuration from environment."""
import os

PORT = int(os.environ.get("PORT", "8001"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# When TESTING=true, use test DB URL so tests never touch the device cache.
if os.environ.get("TESTING") == "true":
    DATABASE_URL = os.environ.get("TESTING_DATABASE_URL", "sqlite:///:memory:")
else:
    DATABASE_URL = os.environ.get(
        "DATABASE_URL",
        "sqlite:///./cityapp.db",
    )

# Remote document store: "memory" (optionally seeded from JSON) or "firestore".
REMOTE_STORE = os.environ.get("REMOTE_STORE", "memory").strip().lower()
REMOTE_SEED_PATH = os.environ.get("REMOTE_SEED_PATH") or None
FIRESTORE_PROJECT = os.environ.get("FIRESTORE_PROJECT") or None

SYNC_ON_STARTUP = os.environ.get("SYNC_ON_STARTUP", "false").strip().lower() == "true"
