"""Tests for the cast receiver core."""
