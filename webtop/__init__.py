"""webtop - host metrics server for a browser-based system monitor."""

__version__ = "1.0.0"
