"""HTTP and WebSocket surface of MultiChat."""
