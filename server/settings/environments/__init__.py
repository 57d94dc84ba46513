"""Overriding settings per environment."""
