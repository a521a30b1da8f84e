"""CLI command modules for cortex."""
