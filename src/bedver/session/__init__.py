"""Operator scan session state machine."""
