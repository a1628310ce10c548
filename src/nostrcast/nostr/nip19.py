"""NIP-19 bech32 entities: npub, nevent and naddr.

nevent/naddr carry TLV records so that a link bundles an event reference
with relay hints:

    0 special   event id (32 bytes) for nevent, d-tag identifier for naddr
    1 relay     relay URL (ascii), repeatable
    2 author    pubkey (32 bytes)
    3 kind      event kind (4 bytes, big-endian)
"""

from dataclasses import dataclass, field

from bech32 import CHARSET, bech32_encode, bech32_verify_checksum, convertbits

from nostrcast.utils.errors import Nip19Error

TLV_SPECIAL = 0
TLV_RELAY = 1
TLV_AUTHOR = 2
TLV_KIND = 3

HEX_KEY_LENGTH = 64


@dataclass(frozen=True)
class EventPointer:
    """Decoded nevent."""

    id: str
    relays: list[str] = field(default_factory=list)
    author: str | None = None
    kind: int | None = None


@dataclass(frozen=True)
class AddressPointer:
    """Decoded naddr."""

    identifier: str
    pubkey: str
    kind: int
    relays: list[str] = field(default_factory=list)


def _is_hex_key(value: str) -> bool:
    if len(value) != HEX_KEY_LENGTH:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


def _key_bytes(value: str, what: str) -> bytes:
    if not _is_hex_key(value):
        raise Nip19Error(f"{what} must be 64 hex characters, got {value!r}")
    return bytes.fromhex(value)


def _encode(hrp: str, payload: bytes) -> str:
    return bech32_encode(hrp, convertbits(payload, 8, 5))


def _decode(value: str) -> tuple[str, bytes]:
    """Decode a bech32 string of any length.

    bech32_decode() enforces the 90 character segwit limit, which nevent and
    naddr strings routinely exceed, so the checksum is verified directly.
    """
    if value.lower() != value and value.upper() != value:
        raise Nip19Error("Mixed-case bech32 string")

    bech = value.lower()
    pos = bech.rfind("1")
    if pos < 1 or pos + 7 > len(bech):
        raise Nip19Error(f"Not a bech32 string: {value!r}")

    hrp = bech[:pos]
    try:
        data = [CHARSET.index(char) for char in bech[pos + 1 :]]
    except ValueError as e:
        raise Nip19Error(f"Invalid bech32 character in {value!r}") from e

    if not bech32_verify_checksum(hrp, data):
        raise Nip19Error(f"Bad bech32 checksum: {value!r}")

    payload = convertbits(data[:-6], 5, 8, False)
    if payload is None:
        raise Nip19Error(f"Invalid bech32 padding: {value!r}")

    return hrp, bytes(payload)


def _relay_bytes(url: str) -> bytes:
    try:
        return url.encode("ascii")
    except UnicodeEncodeError as e:
        raise Nip19Error(f"Relay URL must be ascii: {url!r}") from e


def _encode_tlv(records: list[tuple[int, bytes]]) -> bytes:
    out = bytearray()
    for record_type, value in records:
        if len(value) > 255:
            raise Nip19Error(f"TLV value too long ({len(value)} bytes)")
        out += bytes([record_type, len(value)]) + value
    return bytes(out)


def _decode_tlv(payload: bytes) -> dict[int, list[bytes]]:
    records: dict[int, list[bytes]] = {}
    pos = 0
    while pos < len(payload):
        if pos + 2 > len(payload):
            raise Nip19Error("Truncated TLV record")
        record_type, length = payload[pos], payload[pos + 1]
        value = payload[pos + 2 : pos + 2 + length]
        if len(value) != length:
            raise Nip19Error("Truncated TLV value")
        records.setdefault(record_type, []).append(value)
        pos += 2 + length
    return records


def encode_npub(pubkey: str) -> str:
    """Encode a hex public key as npub."""
    return _encode("npub", _key_bytes(pubkey, "Public key"))


def decode_npub(npub: str) -> str:
    """Decode an npub to its hex public key.

    Raises:
        Nip19Error: If the string is not a valid npub
    """
    hrp, payload = _decode(npub)
    if hrp != "npub":
        raise Nip19Error(f"Expected npub, got {hrp}")
    if len(payload) != 32:
        raise Nip19Error(f"npub payload must be 32 bytes, got {len(payload)}")
    return payload.hex()


def resolve_pubkey(value: str) -> str:
    """Accept an npub or a hex key and return the hex key.

    Raises:
        Nip19Error: If the value is neither
    """
    value = value.strip()
    if _is_hex_key(value):
        return value.lower()
    return decode_npub(value)


def encode_nevent(
    event_id: str,
    author: str | None = None,
    relays: list[str] | tuple[str, ...] = (),
    kind: int | None = None,
) -> str:
    """Encode an event reference with relay hints as nevent."""
    records = [(TLV_SPECIAL, _key_bytes(event_id, "Event id"))]
    records += [(TLV_RELAY, _relay_bytes(url)) for url in relays]
    if author:
        records.append((TLV_AUTHOR, _key_bytes(author, "Author")))
    if kind is not None:
        records.append((TLV_KIND, kind.to_bytes(4, "big")))
    return _encode("nevent", _encode_tlv(records))


def decode_nevent(nevent: str) -> EventPointer:
    """Decode an nevent into an EventPointer."""
    hrp, payload = _decode(nevent)
    if hrp != "nevent":
        raise Nip19Error(f"Expected nevent, got {hrp}")

    records = _decode_tlv(payload)
    special = records.get(TLV_SPECIAL)
    if not special or len(special[0]) != 32:
        raise Nip19Error("nevent is missing a 32-byte event id")

    author = records.get(TLV_AUTHOR)
    kind = records.get(TLV_KIND)
    return EventPointer(
        id=special[0].hex(),
        relays=[value.decode("ascii", errors="replace") for value in records.get(TLV_RELAY, [])],
        author=author[0].hex() if author else None,
        kind=int.from_bytes(kind[0], "big") if kind else None,
    )


def encode_naddr(
    identifier: str,
    pubkey: str,
    kind: int,
    relays: list[str] | tuple[str, ...] = (),
) -> str:
    """Encode an addressable event coordinate as naddr."""
    records = [(TLV_SPECIAL, identifier.encode("utf-8"))]
    records += [(TLV_RELAY, _relay_bytes(url)) for url in relays]
    records.append((TLV_AUTHOR, _key_bytes(pubkey, "Pubkey")))
    records.append((TLV_KIND, kind.to_bytes(4, "big")))
    return _encode("naddr", _encode_tlv(records))


def decode_naddr(naddr: str) -> AddressPointer:
    """Decode an naddr into an AddressPointer."""
    hrp, payload = _decode(naddr)
    if hrp != "naddr":
        raise Nip19Error(f"Expected naddr, got {hrp}")

    records = _decode_tlv(payload)
    try:
        identifier = records[TLV_SPECIAL][0].decode("utf-8")
        pubkey = records[TLV_AUTHOR][0]
        kind = records[TLV_KIND][0]
    except (KeyError, UnicodeDecodeError) as e:
        raise Nip19Error("naddr is missing identifier, author or kind") from e

    if len(pubkey) != 32 or len(kind) != 4:
        raise Nip19Error("naddr has malformed author or kind")

    return AddressPointer(
        identifier=identifier,
        pubkey=pubkey.hex(),
        kind=int.from_bytes(kind, "big"),
        relays=[value.decode("ascii", errors="replace") for value in records.get(TLV_RELAY, [])],
    )
