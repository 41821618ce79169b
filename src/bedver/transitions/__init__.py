"""Robot start transitions."""
