import logging
import random
from typing import List, Optional, Sequence, Tuple

from dart_tournament.core.constants import (
    FINAL_MATCHES,
    GRAND_FINAL_MATCHES,
    SEMI_FINAL_MATCHES,
    TEAMS_PER_MATCH,
)
from dart_tournament.core.exceptions import InvalidPlayerCountError
from dart_tournament.models.match_model import MatchModel, RoundType, TournamentMode, team_size
from dart_tournament.models.player_model import PlayerModel

logger = logging.getLogger(__name__)

KNOCKOUT_MATCH_COUNTS = {
    RoundType.SEMI_FINALS: SEMI_FINAL_MATCHES,
    RoundType.FINALS: FINAL_MATCHES,
    RoundType.GRAND_FINALS: GRAND_FINAL_MATCHES,
}


def match_size(mode: TournamentMode, round_type: RoundType) -> int:
    """Players on the board in one match of the given round."""
    return TEAMS_PER_MATCH * team_size(mode, round_type)


def field_size(mode: TournamentMode, round_type: RoundType) -> int:
    """Active players a knockout round is played with."""
    round_type = RoundType(round_type)
    if round_type not in KNOCKOUT_MATCH_COUNTS:
        raise ValueError(f"{round_type.value} is not a knockout round.")
    return KNOCKOUT_MATCH_COUNTS[round_type] * match_size(mode, round_type)


class MatchGenerator:
    """Builds the matches of one round from a pool of active players.

    The random source is injectable so tests can pin the team assignment.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate(
        self,
        players: Sequence[PlayerModel],
        round_type: RoundType,
        mode: TournamentMode = TournamentMode.TWO_V_TWO,
    ) -> Tuple[List[MatchModel], List[PlayerModel]]:
        """Return ``(matches, sit_outs)`` for a round of the given type."""
        round_type = RoundType(round_type)
        if round_type == RoundType.GROUP_PLAY:
            return self.generate_group_play(players, mode)
        return self.generate_knockout(players, round_type, mode), []

    def generate_group_play(
        self,
        players: Sequence[PlayerModel],
        mode: TournamentMode = TournamentMode.TWO_V_TWO,
    ) -> Tuple[List[MatchModel], List[PlayerModel]]:
        """
        Generates a group play round.

        The pool is ordered by internal sit-out counter, ties broken at
        random, and the ``count % match size`` players at the front of that
        order sit out and have both sit-out counters bumped. Sitting out
        moves a player back in the order, so the role rotates through the
        pool. The players who do play are shuffled as a whole and cut into
        consecutive matches, the first half of each forming team A.
        """
        mode = TournamentMode(mode)
        size = match_size(mode, RoundType.GROUP_PLAY)
        pool = [p for p in players if not p.eliminated]
        tie_breaks = {p.id: self.rng.random() for p in pool}
        pool.sort(key=lambda p: (p.internal_times_sat_out, tie_breaks[p.id]))

        excess = len(pool) % size
        if len(pool) < size:
            excess = len(pool)
        sit_outs = pool[:excess]
        playing = pool[excess:]

        for player in sit_outs:
            player.times_sat_out += 1
            player.internal_times_sat_out += 1

        self.rng.shuffle(playing)

        matches = self._cut(playing, RoundType.GROUP_PLAY, mode)

        if not matches:
            logger.warning("Group round has %d eligible player(s); every player sits out", len(pool))
        logger.info(
            "Generated %s group round: %d match(es), %d sitting out",
            mode.value, len(matches), len(sit_outs),
        )
        return matches, sit_outs

    def generate_knockout(
        self,
        players: Sequence[PlayerModel],
        round_type: RoundType,
        mode: TournamentMode = TournamentMode.TWO_V_TWO,
    ) -> List[MatchModel]:
        """
        Generates a knockout round from the full pool.

        Semi-finals are seeded randomly; finals and grand finals keep the
        order they are given in (winners of the previous round, in match
        order), so the winning teams of the two semi-finals meet in the final.
        """
        round_type, mode = RoundType(round_type), TournamentMode(mode)
        expected = field_size(mode, round_type)
        pool = list(players)
        if len(pool) != expected:
            raise InvalidPlayerCountError(
                f"{round_type.value} needs exactly {expected} players, got {len(pool)}."
            )

        if round_type == RoundType.SEMI_FINALS:
            self.rng.shuffle(pool)

        matches = self._cut(pool, round_type, mode)
        logger.info("Generated %s: %d match(es)", round_type.value, len(matches))
        return matches

    @staticmethod
    def _cut(pool: Sequence[PlayerModel], round_type: RoundType, mode: TournamentMode) -> List[MatchModel]:
        size = match_size(mode, round_type)
        half = size // TEAMS_PER_MATCH
        matches = []
        for i in range(0, len(pool) - size + 1, size):
            group = pool[i:i + size]
            matches.append(MatchModel(
                round=round_type,
                mode=mode,
                team_a=[p.id for p in group[:half]],
                team_b=[p.id for p in group[half:]],
            ))
        return matches
