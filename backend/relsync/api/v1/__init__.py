"""Version 1 of the relsync API."""
