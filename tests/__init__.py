"""
Entity Types Test Suite.

This package contains:
- unit/: Unit tests (in-memory stores, temporary SQLite files)
- integration/: Integration tests (full SQLite stack, CLI)
"""
