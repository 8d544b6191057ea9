"""Component packages for the lyrics engine."""
