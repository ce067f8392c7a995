"""Renderers and validators for the lab artifacts."""
