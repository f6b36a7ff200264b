"""Relational to document schema conversion tool."""
