"""Collection rounds and service composition."""
