# Mock classes for testing
"""Mock exchange gateway for testing."""

from .gateway_mock import MockGateway

__all__ = [
    "MockGateway",
]
