"""Domain services: expiry reminders and mechanic search."""
