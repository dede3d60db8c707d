"""Persistence: filesystem access, YAML config/lock stores, checksum cache."""
