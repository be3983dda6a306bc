"""
NIP-19 bech32 entities (nsec, npub, nevent).
"""

from typing import Iterable, Optional

from bech32 import bech32_decode, bech32_encode, convertbits


# TLV types used by nevent
TLV_SPECIAL = 0
TLV_RELAY = 1
TLV_AUTHOR = 2
TLV_KIND = 3


def _encode(hrp: str, payload: bytes) -> str:
    return bech32_encode(hrp, convertbits(payload, 8, 5, True))


def decode_nsec(nsec: str) -> bytes:
    """
    Decode an `nsec1...` string into a 32-byte secret key.

    Raises:
        ValueError: If the string is not a valid nsec
    """
    hrp, data = bech32_decode(nsec.strip())
    if hrp != "nsec" or data is None:
        raise ValueError("not a valid nsec")
    secret = convertbits(data, 5, 8, False)
    if secret is None or len(secret) != 32:
        raise ValueError("nsec must encode 32 bytes")
    return bytes(secret)


def encode_nsec(secret: bytes) -> str:
    return _encode("nsec", secret)


def encode_npub(pubkey_hex: str) -> str:
    return _encode("npub", bytes.fromhex(pubkey_hex))


def encode_nevent(
    event_id: str,
    relays: Iterable[str] = (),
    author: Optional[str] = None,
    kind: Optional[int] = None,
) -> str:
    """
    Encode an event pointer as `nevent1...`.

    Args:
        event_id: Hex event id
        relays: Relay hints
        author: Hex pubkey of the event author
        kind: Event kind

    Returns:
        bech32 string with the TLV payload
    """
    tlv = bytearray()

    def put(t: int, value: bytes):
        tlv.extend((t, len(value)))
        tlv.extend(value)

    put(TLV_SPECIAL, bytes.fromhex(event_id))
    for relay in relays:
        put(TLV_RELAY, relay.encode("ascii"))
    if author:
        put(TLV_AUTHOR, bytes.fromhex(author))
    if kind is not None:
        put(TLV_KIND, kind.to_bytes(4, "big"))
    return _encode("nevent", bytes(tlv))
