"""HTTP API for QueryGate."""
