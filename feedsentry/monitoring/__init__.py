"""Collector supervision."""
