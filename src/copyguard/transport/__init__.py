"""Backend command transport."""

from copyguard.transport.backend import BackendClient

__all__ = ["BackendClient"]
