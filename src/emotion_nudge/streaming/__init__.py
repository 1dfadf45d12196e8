"""Event pipeline and its typed commands."""
