"""Helper modules for the cast receiver core."""
