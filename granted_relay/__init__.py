"""MQTT to WebSocket relay for door and robot command state."""

__version__ = "0.1.0"
