"""Leaf command handlers referenced by the packaged command registry."""
