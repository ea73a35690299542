"""Shared error types and the Result wrapper."""
