"""
Playback Models
State, outcome and capability types for the fallback player controller
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from app.core.config import settings
from app.models.catalog import StreamCandidate


class PlayerState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    PLAYING = "playing"
    FAILED = "failed"


class OutcomeKind(str, Enum):
    PLAYING = "playing"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class PlaybackOutcome(BaseModel):
    """Tagged result of one playback attempt or one engine event"""
    kind: OutcomeKind
    error_type: Optional[str] = None
    message: Optional[str] = None
    levels: int = 0  # quality levels found in an HLS manifest

    @classmethod
    def playing(cls, levels: int = 0) -> "PlaybackOutcome":
        return cls(kind=OutcomeKind.PLAYING, levels=levels)

    @classmethod
    def recoverable(cls, error_type: str, message: Optional[str] = None) -> "PlaybackOutcome":
        return cls(kind=OutcomeKind.RECOVERABLE, error_type=error_type, message=message)

    @classmethod
    def fatal(cls, message: str, error_type: Optional[str] = None) -> "PlaybackOutcome":
        return cls(kind=OutcomeKind.FATAL, error_type=error_type, message=message)


class PlaybackCapabilities(BaseModel):
    """What the playback runtime can do"""
    adaptive_streaming: bool = Field(default_factory=lambda: settings.ADAPTIVE_STREAMING)
    native_hls: bool = Field(default_factory=lambda: settings.NATIVE_HLS)
    secure_context: bool = False  # page served over https


class PlaybackStatus(BaseModel):
    """Snapshot of the controller after an operation"""
    state: PlayerState
    index: Optional[int] = None
    total: int = 0
    attempts: int = 0
    candidate: Optional[StreamCandidate] = None
    url: Optional[str] = None  # url actually handed to the engine
    engine: Optional[str] = None
    levels: int = 0
    message: Optional[str] = None
