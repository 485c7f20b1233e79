"""Configuration: confix.toml discovery, section models, settings, logging."""
