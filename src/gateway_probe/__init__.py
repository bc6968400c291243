"""gateway-probe -- reproduction harness for AI gateway HTTP vs WebSocket auth."""

__version__ = '0.1.0'
