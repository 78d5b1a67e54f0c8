import logging
from typing import Iterable, List

from pydantic import ValidationError

from dart_tournament.core.exceptions import (
    DuplicatePlayerError,
    InvalidPlayerNameError,
    NotFoundError,
)
from dart_tournament.models.player_model import PlayerModel
from dart_tournament.models.tournament_model import TournamentModel

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """Owns the player records of one tournament.

    Records live in ``tournament.players`` and are mutated in place. The
    active/eliminated id lists partition that mapping; moving a player
    between them never copies the record. Elimination rules are decided by
    the caller, not here.
    """

    def __init__(self, tournament: TournamentModel):
        self.tournament = tournament

    def get(self, player_id: str) -> PlayerModel:
        player = self.tournament.players.get(player_id)
        if player is None:
            raise NotFoundError(f"Player with ID {player_id} not found.")
        return player

    def add_player(self, name: str) -> PlayerModel:
        try:
            player = PlayerModel(name=name, seed=self.tournament.next_seed)
        except ValidationError as e:
            raise InvalidPlayerNameError(f"Invalid player name {name!r}.") from e

        for existing in self.tournament.players.values():
            if existing.name.casefold() == player.name.casefold():
                raise DuplicatePlayerError(f"A player named '{player.name}' already exists.")

        self.tournament.players[player.id] = player
        self.tournament.active_ids.append(player.id)
        self.tournament.next_seed += 1
        logger.debug("Registered player %s (%s) with seed %d", player.name, player.id, player.seed)
        return player

    def remove_player(self, player_id: str) -> PlayerModel:
        player = self.get(player_id)
        del self.tournament.players[player_id]
        for ids in (self.tournament.active_ids, self.tournament.eliminated_ids,
                    self.tournament.last_eliminated_ids, self.tournament.sit_out_ids):
            if player_id in ids:
                ids.remove(player_id)
        logger.debug("Removed player %s (%s)", player.name, player_id)
        return player

    def record_win(self, player_id: str) -> PlayerModel:
        player = self.get(player_id)
        player.wins += 1
        return player

    def record_loss(self, player_id: str) -> PlayerModel:
        player = self.get(player_id)
        player.losses += 1
        return player

    def record_sit_out(self, player_id: str) -> PlayerModel:
        player = self.get(player_id)
        player.times_sat_out += 1
        player.internal_times_sat_out += 1
        return player

    # --- Partition views ---

    def active_players(self) -> List[PlayerModel]:
        return [self.tournament.players[pid] for pid in self.tournament.active_ids]

    def eliminated_players(self) -> List[PlayerModel]:
        return [self.tournament.players[pid] for pid in self.tournament.eliminated_ids]

    def last_eliminated_players(self) -> List[PlayerModel]:
        return [self.tournament.players[pid] for pid in self.tournament.last_eliminated_ids]

    def is_active(self, player_id: str) -> bool:
        return player_id in self.tournament.active_ids

    def eliminate(self, player_ids: Iterable[str]) -> List[PlayerModel]:
        """Move players from the active list to the eliminated list."""
        moved = []
        for pid in player_ids:
            player = self.get(pid)
            player.eliminated = True
            if pid in self.tournament.active_ids:
                self.tournament.active_ids.remove(pid)
            if pid in self.tournament.sit_out_ids:
                self.tournament.sit_out_ids.remove(pid)
            if pid not in self.tournament.eliminated_ids:
                self.tournament.eliminated_ids.append(pid)
            moved.append(player)
        return moved

    def reinstate(self, player_ids: Iterable[str]) -> List[PlayerModel]:
        """Move eliminated players back to the active list, keeping their stats."""
        moved = []
        for pid in player_ids:
            player = self.get(pid)
            player.eliminated = False
            if pid in self.tournament.eliminated_ids:
                self.tournament.eliminated_ids.remove(pid)
            if pid in self.tournament.last_eliminated_ids:
                self.tournament.last_eliminated_ids.remove(pid)
            if pid not in self.tournament.active_ids:
                self.tournament.active_ids.append(pid)
            moved.append(player)
        return moved

    def reset_stats(self):
        """Zero every record and put the whole roster back in the active list, in seed order."""
        players = sorted(self.tournament.players.values(), key=lambda p: p.seed)
        for player in players:
            player.reset_stats()
        self.tournament.active_ids = [p.id for p in players]
        self.tournament.eliminated_ids = []
        self.tournament.last_eliminated_ids = []
        self.tournament.sit_out_ids = []

    def clear(self):
        self.tournament.players = {}
        self.tournament.active_ids = []
        self.tournament.eliminated_ids = []
        self.tournament.last_eliminated_ids = []
        self.tournament.sit_out_ids = []
        self.tournament.next_seed = 0
