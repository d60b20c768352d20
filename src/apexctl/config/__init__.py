"""Configuration layer: settings, apex.toml discovery, logging setup."""
