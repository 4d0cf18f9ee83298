"""Configuration loading for the registry client."""
