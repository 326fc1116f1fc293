"""Core utilities: errors, permissions, locking and security."""
