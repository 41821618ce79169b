"""Bed and robot validators."""
