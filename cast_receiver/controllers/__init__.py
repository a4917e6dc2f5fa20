"""Controllers owned by the receiver app."""
