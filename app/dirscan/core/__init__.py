"""Core configuration and path helpers."""
