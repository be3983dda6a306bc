"""
Provider implementations for the typhoon bot.
"""

from .signer import NsecSigner
from .relay import WebSocketRelay
from .bulletin import JmaBulletinSource
from .genmap import GenmapClient

__all__ = [
    'NsecSigner',
    'WebSocketRelay',
    'JmaBulletinSource',
    'GenmapClient'
]
