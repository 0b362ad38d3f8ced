"""relbump commands."""
