"""Settings and credential storage."""
