"""CarAssist: vehicle documents, expiry reminders and nearby mechanics."""

__version__ = "0.1.0"
