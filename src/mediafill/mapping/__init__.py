"""Structural mapping between source and destination record shapes."""
