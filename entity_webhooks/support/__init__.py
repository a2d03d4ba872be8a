"""Helpers shared by webhook emitters."""
