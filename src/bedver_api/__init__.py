"""Bed verification HTTP API."""
