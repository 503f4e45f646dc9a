"""Shared constants, errors, settings and logging for soundpack-ctrl."""
