"""Robot topology configuration."""
