"""
Common data structures for the typhoon bot.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, List, Dict, Any, Tuple
from enum import Enum


# Nostr event kinds used by the bot
KIND_METADATA = 0
KIND_TEXT_NOTE = 1


@dataclass(frozen=True)
class CycloneRecord:
    """One tracked tropical cyclone from a JMA `specifications.json` payload."""
    tc_id: str
    header: Dict[str, Any]
    bodies: Tuple[Dict[str, Any], ...]

    @property
    def issue_time(self) -> str:
        return self.header["issue"]["JST"]

    @property
    def typhoon_number(self) -> str:
        return self.header.get("typhoonNumber", "")

    @property
    def current(self) -> Dict[str, Any]:
        """Body describing the current (analysis) position."""
        return self.bodies[0]

    @classmethod
    def from_specs(cls, tc_id: str, specs: List[Dict[str, Any]]) -> 'CycloneRecord':
        """Build from a `[header, body, ...]` specifications array."""
        if not isinstance(specs, list) or len(specs) < 2:
            raise ValueError(f"specifications for {tc_id} must hold a header and at least one body")
        header, *bodies = specs
        if "issue" not in header or "JST" not in header["issue"]:
            raise ValueError(f"specifications for {tc_id} have no issue time")
        return cls(tc_id=tc_id, header=header, bodies=tuple(bodies))


@dataclass(frozen=True)
class Snapshot:
    """All cyclones tracked in one evaluation cycle."""
    records: Tuple[CycloneRecord, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.records) == 0

    @property
    def max_issue_time(self) -> str:
        """Latest issue time across all records ("" when empty)."""
        return max((r.issue_time for r in self.records), default="")

    @classmethod
    def empty(cls) -> 'Snapshot':
        return cls(records=())


@dataclass
class AnnouncementState:
    """What the bot last announced during this process lifetime."""
    has_active_cyclones: bool = True
    last_issue_time: str = ""
    last_message_id: str = ""

    def copy(self) -> 'AnnouncementState':
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'has_active_cyclones': self.has_active_cyclones,
            'last_issue_time': self.last_issue_time,
            'last_message_id': self.last_message_id,
        }


class DecisionKind(str, Enum):
    """Outcome of evaluating a snapshot."""
    NO_ACTION = "no_action"
    ANNOUNCE_EMPTY = "announce_empty"
    ANNOUNCE_BULLETIN = "announce_bulletin"


@dataclass(frozen=True)
class Decision:
    """Result of `UpdateGate.evaluate`, carrying the state it replaced."""
    kind: DecisionKind
    snapshot: Snapshot
    previous_state: Optional[AnnouncementState] = None

    @property
    def should_announce(self) -> bool:
        return self.kind != DecisionKind.NO_ACTION


@dataclass
class OutboundMessage:
    """Unsigned event payload."""
    kind: int
    content: str
    created_at: int
    tags: List[List[str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'content': self.content,
            'created_at': self.created_at,
            'tags': [list(t) for t in self.tags],
        }


@dataclass(frozen=True)
class SignedMessage:
    """Signed, identifier-bearing event."""
    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: Tuple[Tuple[str, ...], ...]
    content: str
    sig: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the NIP-01 wire representation."""
        return {
            'id': self.id,
            'pubkey': self.pubkey,
            'created_at': self.created_at,
            'kind': self.kind,
            'tags': [list(t) for t in self.tags],
            'content': self.content,
            'sig': self.sig,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignedMessage':
        return cls(
            id=data['id'],
            pubkey=data['pubkey'],
            created_at=data['created_at'],
            kind=data['kind'],
            tags=tuple(tuple(t) for t in data.get('tags', [])),
            content=data.get('content', ''),
            sig=data['sig'],
        )


class DeliveryStatus(str, Enum):
    """Per-relay publish outcome."""
    OK = "ok"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one publish attempt against one relay."""
    relay_url: str
    status: DeliveryStatus
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.OK

    def __str__(self) -> str:
        if self.reason:
            return f"[{self.relay_url}] {self.status.value}: {self.reason}"
        return f"[{self.relay_url}] {self.status.value}"
