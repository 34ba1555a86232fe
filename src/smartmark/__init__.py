"""SMARTMARK: personal bookmarks on Supabase with live updates."""

__version__ = "0.1.0"
