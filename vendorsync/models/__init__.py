"""Data models for vendor configuration, lock state and compliance results."""
