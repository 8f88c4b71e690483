"""Service metadata endpoints."""
