"""Models (data structures and base classes) used by the cast receiver core."""
