"""Tests for the cast receiver core building blocks."""
