"""Web UI for SMARTMARK."""
