"""Utility modules for btmeta."""
