import logging
from typing import List, Mapping, Tuple

from dart_tournament.core.exceptions import IncompleteResultsError, InvalidValueError, NotFoundError
from dart_tournament.models.match_model import MatchModel, RoundType, Side
from dart_tournament.models.tournament_model import TournamentModel
from dart_tournament.services.player_registry import PlayerRegistry

logger = logging.getLogger(__name__)


class ResultProcessor:
    """Applies a complete round of results to a tournament's player records.

    Phase transitions are left to the caller; the processor only updates
    stats, the active/eliminated partition and the most-recently-eliminated
    list, and reports how many players are still active.
    """

    def process(
        self,
        tournament: TournamentModel,
        matches: List[MatchModel],
        results: Mapping[str, Side],
    ) -> Tuple[List[MatchModel], int]:
        """
        Processes the results of a round, all or nothing.

        Args:
            tournament: The tournament owning the player records.
            matches: The round's matches, in round order.
            results: Winning side per match id; one entry per match is required.

        Returns:
            Tuple of (decided match copies in round order, active player count).

        Raises:
            NotFoundError: If a result names a match that is not in the round.
            IncompleteResultsError: If any match of the round has no result.
            InvalidValueError: If a result is not a valid side or a match is already decided.
        """
        match_ids = {m.id for m in matches}
        unknown = [mid for mid in results if mid not in match_ids]
        if unknown:
            raise NotFoundError(f"Match with ID {unknown[0]} not found in the current round.")
        missing = [m.id for m in matches if m.id not in results]
        if missing:
            raise IncompleteResultsError(
                f"Results missing for {len(missing)} of {len(matches)} match(es)."
            )
        already = [m.id for m in matches if m.is_decided]
        if already:
            raise InvalidValueError(f"Match with ID {already[0]} already has a winner.")
        try:
            sides = {mid: Side(side) for mid, side in results.items()}
        except ValueError as e:
            raise InvalidValueError(f"Invalid winning side in results: {e}") from e

        registry = PlayerRegistry(tournament)
        # Resolve every player before touching any record.
        for match in matches:
            for pid in match.player_ids:
                registry.get(pid)

        newly_eliminated: List[str] = []
        decided: List[MatchModel] = []
        for match in matches:
            result = match.decided(sides[match.id])
            knockout = RoundType(result.round) != RoundType.GROUP_PLAY

            for pid in result.losers():
                player = registry.record_loss(pid)
                if knockout or player.losses >= tournament.max_losses:
                    player.eliminated = True
                    newly_eliminated.append(pid)
                    logger.debug("Player %s eliminated with %d loss(es)", player.name, player.losses)
            for pid in result.winners():
                registry.record_win(pid)
            decided.append(result)

        group_round = bool(decided) and RoundType(decided[0].round) == RoundType.GROUP_PLAY
        if group_round:
            # Losses set by hand before the first round are enforced here.
            for pid in tournament.active_ids:
                player = tournament.players[pid]
                if pid not in newly_eliminated and player.losses >= tournament.max_losses:
                    player.eliminated = True
                    newly_eliminated.append(pid)
                    logger.debug("Player %s eliminated with %d loss(es)", player.name, player.losses)

        registry.eliminate(newly_eliminated)
        tournament.last_eliminated_ids = list(newly_eliminated)
        if decided and not group_round:
            # Winning teams stay together for the next knockout round.
            tournament.active_ids = [pid for m in decided for pid in m.winners()]

        active_count = len(tournament.active_ids)
        logger.info(
            "Processed %d match(es): %d eliminated, %d active",
            len(decided), len(newly_eliminated), active_count,
        )
        return decided, active_count
