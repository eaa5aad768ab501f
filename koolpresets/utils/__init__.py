"""Settings, logging and timing helpers."""
