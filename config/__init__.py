"""Configuration for the research assistant."""
