"""Labware directory clients."""
