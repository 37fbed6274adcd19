"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between a front end and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- PLAYER_NOT_FOUND: No player with the given id
- NOTICE_NOT_FOUND: No pending notice with the given id
- VALIDATION_ERROR: Request body or parameters are malformed
- INTERNAL_ERROR: Unexpected failure
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field

from ..engine_core.state import NAME_MAX_LENGTH


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    ACTIVE = "active"
    OVER = "over"


class CardFace(str, Enum):
    HIDDEN = "hidden"
    FLIPPED = "flipped"
    MATCHED = "matched"


class ThemeName(str, Enum):
    ANIMALS = "Animals"
    FOOD = "Food"
    RANDOM = "Random"
    MIXED = "Mixed"


class OutcomeKind(str, Enum):
    SOLO = "solo"
    WINNER = "winner"
    TIE = "tie"


class ErrorCode(str, Enum):
    """Structured error codes."""
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    NOTICE_NOT_FOUND = "NOTICE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class CardInfo(BaseModel):
    """
    A card as the UI should draw it.

    `emoji` is only present while the card is face up.
    """
    index: int
    card_id: int
    face: CardFace
    emoji: Optional[str] = None
    is_highlighted: bool = False


class PlayerInfo(BaseModel):
    """Player information for display."""
    player_id: int
    name: str
    score: int = 0
    is_current_turn: bool = False

    model_config = {"from_attributes": True}


class SettingsInfo(BaseModel):
    player_count: int
    theme: ThemeName


class StatsInfo(BaseModel):
    """Solo records, in milliseconds and formatted m:ss.cc."""
    best_time_ms: Optional[int] = None
    last_game_time_ms: Optional[int] = None
    best_time: str = "--"
    last_game_time: str = "--"


class CompletionInfo(BaseModel):
    """End-of-game verdict."""
    outcome: OutcomeKind
    headline: str = Field(description="Game Complete!, <name> wins!, It's a tie!")
    duration_ms: int
    duration: str
    top_score: int
    winners: list[PlayerInfo] = Field(default_factory=list)
    score_lines: list[str] = Field(default_factory=list)
    is_new_best: bool = False


class NoticeInfo(BaseModel):
    """A user-visible problem, possibly retryable."""
    notice_id: int
    error_type: str = Field(description="STORAGE, SOUND, GAME_STATE, SETTINGS")
    message: str
    retryable: bool = False


# =============================================================================
# Requests
# =============================================================================

class SettingsRequest(BaseModel):
    """New settings. Out-of-range counts are clamped, unknown themes default."""
    player_count: int = Field(1, description="Number of players (1-4)")
    theme: str = Field("Animals", description="Animals, Food, Random or Mixed")


class RenamePlayerRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH, description="New display name")


# =============================================================================
# Responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Standardized error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameStateResponse(BaseModel):
    """Full state of the table."""
    generation: int
    status: SessionStatus
    cards: list[CardInfo] = Field(default_factory=list)
    players: list[PlayerInfo] = Field(default_factory=list)
    current_player_index: int = 0
    selection: list[int] = Field(default_factory=list)
    matched_pairs: int = 0
    elapsed_ms: int = 0
    settings: SettingsInfo
    stats: StatsInfo = Field(default_factory=StatsInfo)
    completion: Optional[CompletionInfo] = None
    api_version: str = "v1"


class FlipResponse(BaseModel):
    """Result of a flip request."""
    accepted: bool = Field(description="False when the flip was silently ignored")
    reason: Optional[str] = None
    changes: list[str] = Field(default_factory=list)
    game_state: GameStateResponse
    api_version: str = "v1"


class RenamePlayerResponse(BaseModel):
    success: bool
    player: Optional[PlayerInfo] = None
    notices: list[NoticeInfo] = Field(default_factory=list)


class ResetDataResponse(BaseModel):
    success: bool
    message: str
    game_state: GameStateResponse


class NoticeListResponse(BaseModel):
    notices: list[NoticeInfo]
    count: int


class RetryResponse(BaseModel):
    success: bool
    notice_id: int
    notices: list[NoticeInfo] = Field(default_factory=list)


class DismissNoticeResponse(BaseModel):
    success: bool
    notice_id: int
    remaining: int = Field(0, description="Notices still pending")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
