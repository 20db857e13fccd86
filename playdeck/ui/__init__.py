"""Terminal user interface: key handling, rendering and the interactive loop."""
