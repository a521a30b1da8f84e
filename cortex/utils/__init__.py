"""Utility modules for cortex."""
