"""Hydra configuration defaults."""
