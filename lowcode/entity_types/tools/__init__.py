"""Command-line tools for the entity type registry."""
