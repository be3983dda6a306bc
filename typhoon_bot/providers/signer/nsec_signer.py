"""
Secret-key event signer (NIP-01 ids, BIP-340 Schnorr signatures).
"""

import hashlib
import json
import os
from typing import Any, Dict

from coincurve import PrivateKey

from ...interfaces.signer import SignerInterface
from ...models.data_models import OutboundMessage, SignedMessage
from ...utils.nip19 import decode_nsec


def compute_event_id(pubkey: str, message: OutboundMessage) -> str:
    """sha256 over the canonical `[0, pubkey, created_at, kind, tags, content]` array."""
    serialized = json.dumps(
        [0, pubkey, message.created_at, message.kind, [list(t) for t in message.tags], message.content],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class NsecSigner(SignerInterface):
    """Signs events with a locally held secp256k1 secret key."""

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: Configuration dictionary containing:
                - secret_key: `nsec1...` string or 64-char hex secret
        """
        secret = config.get('secret_key')
        if not secret:
            raise ValueError("Nostr secret key is required")

        if secret.startswith("nsec1"):
            secret_bytes = decode_nsec(secret)
        else:
            secret_bytes = bytes.fromhex(secret)
        self._key = PrivateKey(secret_bytes)
        self._pubkey = self._key.public_key_xonly.format().hex()

    async def get_public_key(self) -> str:
        return self._pubkey

    async def sign(self, message: OutboundMessage) -> SignedMessage:
        event_id = compute_event_id(self._pubkey, message)
        sig = self._key.sign_schnorr(bytes.fromhex(event_id), os.urandom(32))
        return SignedMessage(
            id=event_id,
            pubkey=self._pubkey,
            created_at=message.created_at,
            kind=message.kind,
            tags=tuple(tuple(t) for t in message.tags),
            content=message.content,
            sig=sig.hex(),
        )
