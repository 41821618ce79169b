"""Core settings and shared domain types."""
