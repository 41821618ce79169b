"""Transition ledger persistence."""
