"""Command line interface for the MDM engine."""
