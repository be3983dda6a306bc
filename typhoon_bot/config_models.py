"""
Pydantic configuration models with validation.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Dict, Any, List
import os


def _split_urls(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [u.strip() for u in value.split(",") if u.strip()]


class NostrConfig(BaseModel):
    """Signing identity."""
    secret_key: str = Field(..., description="nsec1... secret key")

    @field_validator('secret_key')
    @classmethod
    def validate_secret_key(cls, v):
        if not v or not v.startswith('nsec1'):
            raise ValueError('missing or invalid NOSTR_SECRET_KEY')
        return v


class RelayConfig(BaseModel):
    """Read/write relay sets and publish timeout."""
    read_relays: List[str] = Field(..., min_length=1, description="Relays watched for queries")
    write_relays: List[str] = Field(..., min_length=1, description="Relays that receive posts")
    publish_timeout: float = Field(5.0, gt=0, le=60, description="Per-relay publish timeout (seconds)")
    close_timeout: float = Field(0.5, gt=0, le=10, description="Per-relay bound on closing a connection (seconds)")

    @field_validator('read_relays', 'write_relays')
    @classmethod
    def validate_urls(cls, v):
        for url in v:
            if not url.startswith(('wss://', 'ws://')):
                raise ValueError(f'Invalid relay URL: {url}')
        return v


class GenmapConfig(BaseModel):
    """Map image service (optional)."""
    base_url: Optional[str] = Field(None, description="genmap service base URL")
    request_timeout: float = Field(60.0, gt=0, description="Request timeout (seconds)")

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        if v and not v.startswith(('http://', 'https://')):
            raise ValueError(f'Invalid genmap base URL: {v}')
        return v or None


class BulletinConfig(BaseModel):
    """Upstream JMA data source."""
    base_url: str = Field("https://www.jma.go.jp/bosai/typhoon/data", description="JMA typhoon data URL")
    request_timeout: float = Field(30.0, gt=0, description="Request timeout (seconds)")


class ScheduleConfig(BaseModel):
    """Announcement cadence (`offset-59/interval * * * *`)."""
    interval_minutes: int = Field(5, ge=1, le=60)
    offset_minutes: int = Field(1, ge=0, le=59)
    post_on_launch: bool = Field(True, description="Run one cycle immediately on startup")

    @model_validator(mode='after')
    def validate_offset(self):
        if self.offset_minutes >= self.interval_minutes:
            raise ValueError('offset_minutes must be smaller than interval_minutes')
        return self


class ResponderConfig(BaseModel):
    """Query matching for the response watcher."""
    enabled: bool = Field(True)
    required_words: List[str] = Field(default_factory=lambda: ["台風", "どこ"], min_length=1)
    question_marks: List[str] = Field(default_factory=lambda: ["?", "？"], min_length=1)
    seen_retention_seconds: Optional[float] = Field(None, gt=0, description="Dedup window; None keeps every id")
    no_announcement_reply: str = Field("まだ台風情報を投稿していません。", description="Reply before the first announcement")


class BotConfig(BaseModel):
    """Complete bot configuration."""
    nostr: NostrConfig
    relays: RelayConfig
    bulletin: BulletinConfig = Field(default_factory=BulletinConfig)
    genmap: GenmapConfig = Field(default_factory=GenmapConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    responder: ResponderConfig = Field(default_factory=ResponderConfig)
    log_level: str = Field("INFO")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Invalid log level: {v}')
        return level

    @classmethod
    def from_env(cls, default_read_relays: List[str], default_write_relays: List[str]) -> 'BotConfig':
        """Load configuration from environment variables."""
        return cls(
            nostr=NostrConfig(secret_key=os.getenv('NOSTR_SECRET_KEY', '')),
            relays=RelayConfig(
                read_relays=_split_urls(os.getenv('READ_RELAYS')) or default_read_relays,
                write_relays=_split_urls(os.getenv('WRITE_RELAYS')) or default_write_relays,
                publish_timeout=os.getenv('PUBLISH_TIMEOUT_SECONDS', '5'),
            ),
            genmap=GenmapConfig(base_url=os.getenv('GENMAP_BASE_URL') or None),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
        )

    def to_provider_dict(self) -> Dict[str, Any]:
        """Convert to the per-provider configuration dictionaries."""
        return {
            'signer': {
                'provider': 'nsec',
                'config': {'secret_key': self.nostr.secret_key},
            },
            'bulletin': {
                'provider': 'jma',
                'config': self.bulletin.model_dump(),
            },
            'map': {
                'provider': 'genmap' if self.genmap.base_url else None,
                'config': self.genmap.model_dump(),
            },
            'relay': {
                'provider': 'websocket',
                'config': {},
            },
        }
