"""Configuration loading (environment, .env file, YAML file, defaults)."""
