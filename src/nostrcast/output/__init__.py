"""Output writing for generated feeds."""

from nostrcast.output.manager import OutputManager
from nostrcast.output.models import FeedHealth, FeedOutput

__all__ = ["OutputManager", "FeedHealth", "FeedOutput"]
