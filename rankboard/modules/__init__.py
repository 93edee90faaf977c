"""Domain modules for Rankboard."""
