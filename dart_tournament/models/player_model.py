from uuid import uuid4

from pydantic import BaseModel, Field, validator


class PlayerStats(BaseModel):
    wins: int = 0
    losses: int = 0
    times_sat_out: int = 0
    eliminated: bool = False


class PlayerModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    wins: int = 0
    losses: int = 0
    times_sat_out: int = 0
    # Tie-breaker for sit-out selection only; may go negative.
    internal_times_sat_out: int = 0
    seed: int = 0
    eliminated: bool = False

    class Config:
        from_attributes = True

    @validator('name')
    def name_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Player name must not be empty')
        return v

    @property
    def stats(self) -> PlayerStats:
        return PlayerStats(
            wins=self.wins,
            losses=self.losses,
            times_sat_out=self.times_sat_out,
            eliminated=self.eliminated,
        )

    def reset_stats(self):
        self.wins = 0
        self.losses = 0
        self.times_sat_out = 0
        self.internal_times_sat_out = 0
        self.eliminated = False
