"""HTTP API for the MDM engine."""
