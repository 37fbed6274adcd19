"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine intents
2. Converts engine snapshots into response models
3. Hides unflipped card faces from clients
4. Surfaces error notices and their retries

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path

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
    # Shared
    CardInfo,
    PlayerInfo,
    SettingsInfo,
    StatsInfo,
    CompletionInfo,
    NoticeInfo,
    # Enums
    CardFace,
    ErrorCode,
    OutcomeKind,
    SessionStatus,
    ThemeName,
)
from ..engine_core.state import Player
from ..engine_core.timer import format_duration
from ..session import GameEngine, EngineSnapshot, CompletionReport, AsyncioScheduler
from ..services.errors import Notice
from ..storage import GameRepository, JsonFileStore


RESET_OK_MESSAGE = "All game data has been reset!"
RESET_FAILED_MESSAGE = "Failed to reset game data. Please try again."


def _player_info(player: Player, current_id: int | None = None) -> PlayerInfo:
    return PlayerInfo(
        player_id=player.id,
        name=player.name,
        score=player.score,
        is_current_turn=player.id == current_id,
    )


def _notice_info(notice: Notice) -> NoticeInfo:
    return NoticeInfo(
        notice_id=notice.notice_id,
        error_type=notice.error_type.value,
        message=notice.message,
        retryable=notice.retryable,
    )


def _completion_info(report: CompletionReport) -> CompletionInfo:
    verdict = report.winner
    return CompletionInfo(
        outcome=OutcomeKind(verdict.kind.value),
        headline=verdict.headline,
        duration_ms=report.duration_ms,
        duration=format_duration(report.duration_ms),
        top_score=verdict.top_score,
        winners=[_player_info(p) for p in verdict.winners],
        score_lines=verdict.summary_lines(),
        is_new_best=report.is_new_best,
    )


def snapshot_to_response(snapshot: EngineSnapshot) -> GameStateResponse:
    """Render an engine snapshot for clients."""
    current = snapshot.players[snapshot.current_player_index]
    cards = [
        CardInfo(
            index=i,
            card_id=card.id,
            face=CardFace(card.face.value),
            emoji=card.emoji if card.is_flipped or card.is_matched else None,
            is_highlighted=i in snapshot.highlighted,
        )
        for i, card in enumerate(snapshot.cards)
    ]
    return GameStateResponse(
        generation=snapshot.generation,
        status=SessionStatus(snapshot.status.value),
        cards=cards,
        players=[_player_info(p, current.id) for p in snapshot.players],
        current_player_index=snapshot.current_player_index,
        selection=list(snapshot.selection),
        matched_pairs=sum(1 for c in snapshot.cards if c.is_matched) // 2,
        elapsed_ms=snapshot.elapsed_ms,
        settings=SettingsInfo(
            player_count=snapshot.settings.player_count,
            theme=ThemeName(snapshot.settings.theme.value),
        ),
        stats=StatsInfo(
            best_time_ms=snapshot.stats.best_time,
            last_game_time_ms=snapshot.stats.last_game_time,
            best_time=format_duration(snapshot.stats.best_time),
            last_game_time=format_duration(snapshot.stats.last_game_time),
        ),
        completion=_completion_info(snapshot.completion) if snapshot.completion else None,
    )


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()
        await service.start()

        state = service.get_state()
        response = await service.flip_card(3)
        state = await service.apply_settings(SettingsRequest(player_count=2))
    """
    engine: GameEngine | None = None
    data_dir: str | Path | None = None

    _started: bool = field(default=False, repr=False)

    def __post_init__(self):
        if self.engine is None:
            self.engine = GameEngine(
                repository=GameRepository(JsonFileStore(self.data_dir)),
                scheduler=AsyncioScheduler(),
            )

    async def start(self) -> GameStateResponse:
        if not self.engine.started:
            await self.engine.start()
        return self.get_state()

    async def shutdown(self) -> None:
        await self.engine.shutdown()

    def get_state(self) -> GameStateResponse:
        return snapshot_to_response(self.engine.snapshot())

    async def flip_card(self, index: int) -> FlipResponse:
        result = await self.engine.flip_card(index)
        accepted = result.success and not result.ignored
        return FlipResponse(
            accepted=accepted,
            reason=result.reason or result.error,
            changes=result.state_changes,
            game_state=self.get_state(),
        )

    async def reset_game(self) -> GameStateResponse:
        await self.engine.reset_game()
        return self.get_state()

    async def apply_settings(self, request: SettingsRequest) -> GameStateResponse:
        await self.engine.apply_settings(request.player_count, request.theme)
        return self.get_state()

    async def rename_player(
        self,
        player_id: int,
        request: RenamePlayerRequest,
    ) -> RenamePlayerResponse | ErrorResponse:
        try:
            success = await self.engine.edit_player_name(player_id, request.name)
        except KeyError:
            return ErrorResponse(
                error=f"Player {player_id} not found",
                error_code=ErrorCode.PLAYER_NOT_FOUND,
            )

        # The session may have been replaced while the save was awaited
        player = next((p for p in self.engine.state.players if p.id == player_id), None)
        if player is None:
            return ErrorResponse(
                error=f"Player {player_id} left the table",
                error_code=ErrorCode.PLAYER_NOT_FOUND,
            )
        return RenamePlayerResponse(
            success=success,
            player=_player_info(player, self.engine.state.current_player.id),
            notices=self.list_notices().notices,
        )

    async def reset_all_data(self) -> ResetDataResponse:
        success = await self.engine.reset_all_data()
        return ResetDataResponse(
            success=success,
            message=RESET_OK_MESSAGE if success else RESET_FAILED_MESSAGE,
            game_state=self.get_state(),
        )

    def list_notices(self) -> NoticeListResponse:
        notices = [_notice_info(n) for n in self.engine.error_handler.notices]
        return NoticeListResponse(notices=notices, count=len(notices))

    def dismiss_notice(self, notice_id: int) -> DismissNoticeResponse | ErrorResponse:
        if not self.engine.error_handler.dismiss(notice_id):
            return ErrorResponse(
                error=f"Notice {notice_id} not found",
                error_code=ErrorCode.NOTICE_NOT_FOUND,
            )
        return DismissNoticeResponse(
            success=True,
            notice_id=notice_id,
            remaining=len(self.engine.error_handler.notices),
        )

    async def retry_notice(self, notice_id: int) -> RetryResponse | ErrorResponse:
        try:
            success = await self.engine.error_handler.retry(notice_id)
        except KeyError:
            return ErrorResponse(
                error=f"Notice {notice_id} not found",
                error_code=ErrorCode.NOTICE_NOT_FOUND,
            )
        return RetryResponse(
            success=success,
            notice_id=notice_id,
            notices=self.list_notices().notices,
        )
