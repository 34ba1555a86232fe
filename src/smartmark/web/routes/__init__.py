"""Route modules for the SMARTMARK web UI."""
