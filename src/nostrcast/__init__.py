"""nostrcast - Podcast RSS feeds synthesized from Nostr episode events."""

__version__ = "0.1.0"
