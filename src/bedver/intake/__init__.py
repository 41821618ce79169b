"""Scan request intake."""
