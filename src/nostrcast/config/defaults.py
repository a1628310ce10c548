"""Default configuration values and the config.yaml written on first run."""

DEFAULT_CREATOR_NPUB = "npub1km5prrxcgt5fwgjzjpltyswsuu7u7jcj2cx9hk2rwvxyk00v2jqsgv0a3h"

DEFAULT_BASE_URL = "https://podstr.example"

DEFAULT_RELAYS = (
    "wss://relay.nostr.band",
    "wss://relay.damus.io",
    "wss://nos.lol",
    "wss://relay.primal.net",
)

# Environment variables that override config.yaml
BASE_URL_ENV = "BASE_URL"
RELAYS_ENV = "NOSTR_RELAYS"


def get_default_config_content() -> str:
    """Return the commented config.yaml created when none exists."""
    relays = "\n".join(f"  - {url}" for url in DEFAULT_RELAYS)
    return f"""\
# nostrcast configuration
version: "1"
log_level: INFO

# Podcast creator (npub or 64-char hex). Only their events are published.
creator_npub: {DEFAULT_CREATOR_NPUB}

# Public site URL; episode links are {{base_url}}/<nevent>.
# Overridden by the {BASE_URL_ENV} environment variable.
base_url: {DEFAULT_BASE_URL}

# Overridden by {RELAYS_ENV} (comma-separated).
relays:
{relays}

episode_kind: 54
query_timeout: 15
metadata_timeout: 5
query_limit: 100
max_pages: 5

output_dir: dist
feed_filename: rss.xml
health_filename: rss-health.json

# Podcast metadata. A kind 30078 event (d=podcast-metadata) from the creator
# overrides these values at generation time.
podcast:
  title: PODSTR Podcast
  description: A Nostr-powered podcast exploring decentralized conversations
  author: PODSTR Creator
  email: creator@podstr.example
  image: https://example.com/podcast-artwork.jpg
  language: en-us
  categories:
    - Technology
    - Social Networking
    - Society & Culture
  explicit: false
  website: https://podstr.example
  copyright: © 2025 PODSTR Creator
  funding: []
  type: episodic

rss:
  ttl: 60
"""
