from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4
from enum import Enum

from pydantic import BaseModel, Field

from dart_tournament.models.match_model import MatchModel, Side, TournamentMode
from dart_tournament.models.player_model import PlayerModel

class TournamentPhase(str, Enum):
    SETUP = "SETUP"
    GROUP_PLAY = "GROUP_PLAY"
    FINAL_SELECTION = "FINAL_SELECTION"
    SEMI_FINALS = "SEMI_FINALS"
    FINALS = "FINALS"
    GRAND_FINALS = "GRAND_FINALS"
    COMPLETED = "COMPLETED"

class TournamentModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    max_losses: int
    grand_finals: bool = True
    mode: TournamentMode = TournamentMode.TWO_V_TWO
    phase: TournamentPhase = TournamentPhase.SETUP

    # Single owner of every player record; the id lists below partition it.
    players: Dict[str, PlayerModel] = Field(default_factory=dict)
    active_ids: List[str] = Field(default_factory=list)
    eliminated_ids: List[str] = Field(default_factory=list)
    last_eliminated_ids: List[str] = Field(default_factory=list)
    next_seed: int = 0

    matches: List[MatchModel] = Field(default_factory=list)
    sit_out_ids: List[str] = Field(default_factory=list)
    pending_results: Dict[str, Side] = Field(default_factory=dict)
    history: List[MatchModel] = Field(default_factory=list)
    winner_ids: List[str] = Field(default_factory=list)

    class Config:
        json_encoders = {
            datetime: lambda v: v.isoformat() if v else None,
        }
        from_attributes = True
        use_enum_values = True

    @property
    def round_pending(self) -> bool:
        """True while the current round has matches without a processed result."""
        return any(not m.is_decided for m in self.matches)

    def match_by_id(self, match_id: str) -> Optional[MatchModel]:
        return next((m for m in self.matches if m.id == match_id), None)

class TournamentSnapshot(BaseModel):
    """Consistent read-only copy of a tournament handed to callers."""
    id: str
    phase: TournamentPhase
    max_losses: int
    grand_finals: bool
    mode: TournamentMode
    players: Dict[str, PlayerModel]
    active_players: List[PlayerModel]
    eliminated_players: List[PlayerModel]
    last_eliminated_players: List[PlayerModel]
    sit_out_players: List[PlayerModel]
    matches: List[MatchModel]
    pending_results: Dict[str, Side]
    history: List[MatchModel]
    winners: List[PlayerModel]

    class Config:
        use_enum_values = True

    @classmethod
    def from_tournament(cls, tournament: TournamentModel) -> "TournamentSnapshot":
        t = tournament.model_copy(deep=True)
        return cls(
            id=t.id,
            phase=t.phase,
            max_losses=t.max_losses,
            grand_finals=t.grand_finals,
            mode=t.mode,
            players=t.players,
            active_players=[t.players[pid] for pid in t.active_ids],
            eliminated_players=[t.players[pid] for pid in t.eliminated_ids],
            last_eliminated_players=[t.players[pid] for pid in t.last_eliminated_ids],
            sit_out_players=[t.players[pid] for pid in t.sit_out_ids],
            matches=t.matches,
            pending_results=t.pending_results,
            history=t.history,
            winners=[t.players[pid] for pid in t.winner_ids],
        )
