"""
Data models for the typhoon bot.
"""

from .data_models import (
    KIND_METADATA,
    KIND_TEXT_NOTE,
    CycloneRecord,
    Snapshot,
    AnnouncementState,
    DecisionKind,
    Decision,
    OutboundMessage,
    SignedMessage,
    DeliveryStatus,
    DeliveryResult,
)

__all__ = [
    'KIND_METADATA',
    'KIND_TEXT_NOTE',
    'CycloneRecord',
    'Snapshot',
    'AnnouncementState',
    'DecisionKind',
    'Decision',
    'OutboundMessage',
    'SignedMessage',
    'DeliveryStatus',
    'DeliveryResult',
]
