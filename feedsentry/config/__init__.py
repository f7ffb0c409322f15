"""Configuration: settings models and the default source catalogue."""
