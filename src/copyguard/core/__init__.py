"""Core configuration and error types shared by every copyguard module."""
