"""Nostr protocol pieces: event models, NIP-19 entities and the relay pool."""

from nostrcast.nostr.models import (
    ADDRESSABLE_EPISODE_KIND,
    DELETION_KIND,
    EPISODE_KIND,
    PODCAST_METADATA_KIND,
    Filter,
    NostrEvent,
    is_addressable_kind,
)
from nostrcast.nostr.nip19 import (
    decode_naddr,
    decode_nevent,
    decode_npub,
    encode_naddr,
    encode_nevent,
    encode_npub,
    resolve_pubkey,
)
from nostrcast.nostr.relay import RelayClient, RelayPool, paginate

__all__ = [
    "ADDRESSABLE_EPISODE_KIND",
    "DELETION_KIND",
    "EPISODE_KIND",
    "PODCAST_METADATA_KIND",
    "Filter",
    "NostrEvent",
    "is_addressable_kind",
    "decode_naddr",
    "decode_nevent",
    "decode_npub",
    "encode_naddr",
    "encode_nevent",
    "encode_npub",
    "resolve_pubkey",
    "RelayClient",
    "RelayPool",
    "paginate",
]
