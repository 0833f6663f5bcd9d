"""Minimal conftest for unit tests - no database, no network."""

import os

# Set required env vars before any app imports
os.environ.setdefault("ALERTS_CRON_API_KEY", "test-cron-key")
os.environ.setdefault("ALERT_COOLDOWN_MINUTES", "10")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("LOG_FORMAT", "text")
