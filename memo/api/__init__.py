"""
API Module - Front-end interface.

Exposes the engine via REST API. A front end:
1. Reads the table
2. Flips cards
3. Changes settings and player names
4. Shows and retries error notices

There is one table per server process.
"""

from .schemas import (
    # Requests
    SettingsRequest,
    RenamePlayerRequest,
    # Responses
    GameStateResponse,
    FlipResponse,
    RenamePlayerResponse,
    ResetDataResponse,
    NoticeListResponse,
    RetryResponse,
    DismissNoticeResponse,
    ErrorResponse,
    HealthResponse,
    # Shared
    CardInfo,
    PlayerInfo,
    CompletionInfo,
    NoticeInfo,
)
from .service import APIService, snapshot_to_response

__all__ = [
    # Requests
    "SettingsRequest",
    "RenamePlayerRequest",
    # Responses
    "GameStateResponse",
    "FlipResponse",
    "RenamePlayerResponse",
    "ResetDataResponse",
    "NoticeListResponse",
    "RetryResponse",
    "DismissNoticeResponse",
    "ErrorResponse",
    "HealthResponse",
    # Shared
    "CardInfo",
    "PlayerInfo",
    "CompletionInfo",
    "NoticeInfo",
    # Service
    "APIService",
    "snapshot_to_response",
]
