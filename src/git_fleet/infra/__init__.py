"""Logging and filesystem locations."""
