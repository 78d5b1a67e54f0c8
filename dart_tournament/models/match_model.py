from uuid import uuid4
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field, validator

class Side(str, Enum):
    TEAM_A = "TEAM_A"
    TEAM_B = "TEAM_B"

class RoundType(str, Enum):
    GROUP_PLAY = "GROUP_PLAY"
    SEMI_FINALS = "SEMI_FINALS"
    FINALS = "FINALS"
    GRAND_FINALS = "GRAND_FINALS"

class TournamentMode(str, Enum):
    TWO_V_TWO = "TWO_V_TWO"
    ONE_V_ONE = "ONE_V_ONE"

# Players per team for each round type. Singles tournaments end at the finals.
TEAM_SIZES = {
    TournamentMode.TWO_V_TWO: {
        RoundType.GROUP_PLAY: 2,
        RoundType.SEMI_FINALS: 2,
        RoundType.FINALS: 2,
        RoundType.GRAND_FINALS: 1,
    },
    TournamentMode.ONE_V_ONE: {
        RoundType.GROUP_PLAY: 1,
        RoundType.SEMI_FINALS: 1,
        RoundType.FINALS: 1,
    },
}

def team_size(mode: TournamentMode, round_type: RoundType) -> int:
    mode, round_type = TournamentMode(mode), RoundType(round_type)
    size = TEAM_SIZES[mode].get(round_type)
    if size is None:
        raise ValueError(f"{round_type.value} is not played in {mode.value} tournaments")
    return size

class MatchModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    round: RoundType
    mode: TournamentMode = TournamentMode.TWO_V_TWO
    team_a: List[str]
    team_b: List[str]
    winner: Optional[Side] = None

    class Config:
        from_attributes = True
        use_enum_values = True

    @validator('team_b')
    def teams_match_round_size(cls, v, values):
        team_a = values.get('team_a')
        round_type = values.get('round')
        mode = values.get('mode')
        if team_a is None or round_type is None or mode is None:
            return v
        expected = team_size(mode, round_type)
        if len(team_a) != expected or len(v) != expected:
            raise ValueError(
                f"{RoundType(round_type).value} teams must have {expected} player(s) each, "
                f"got {len(team_a)} and {len(v)}"
            )
        return v

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    @property
    def player_ids(self) -> List[str]:
        return list(self.team_a) + list(self.team_b)

    def team(self, side: Side) -> List[str]:
        return list(self.team_a) if Side(side) == Side.TEAM_A else list(self.team_b)

    def winners(self) -> List[str]:
        if self.winner is None:
            return []
        return self.team(self.winner)

    def losers(self) -> List[str]:
        if self.winner is None:
            return []
        other = Side.TEAM_B if Side(self.winner) == Side.TEAM_A else Side.TEAM_A
        return self.team(other)

    def decided(self, side: Side) -> "MatchModel":
        """Return a decided copy of this match; a decided match is never changed."""
        if self.winner is not None:
            raise ValueError(f"Match {self.id} already has a winner.")
        return self.model_copy(update={"winner": Side(side)}, deep=True)
