"""Command channel, worker loop and playback timer."""
