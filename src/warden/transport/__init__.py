"""Outbound delivery of sealed reports."""

from warden.transport.http import HttpxTransport

__all__ = ["HttpxTransport"]
