"""Shared utilities and schemas used across the portal."""
