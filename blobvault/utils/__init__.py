"""Encoding and validation helpers."""
