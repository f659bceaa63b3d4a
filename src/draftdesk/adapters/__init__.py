"""Adapters for the draft engine's external collaborators."""
