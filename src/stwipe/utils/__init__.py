"""Utility helpers shared across Stwipe modules."""
