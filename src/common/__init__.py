"""Shared helpers: errors, logging and ancestor path resolution."""
