"""Plate well layout helpers."""
