"""HTTP API for the pet shop backend."""
