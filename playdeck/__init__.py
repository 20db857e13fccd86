"""Terminal client for Spotify playback and library browsing."""

__version__ = "0.4.0"
