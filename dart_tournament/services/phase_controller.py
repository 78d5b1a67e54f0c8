import logging
from typing import Iterable, Mapping, Optional

from dart_tournament.core.config import settings
from dart_tournament.core.exceptions import (
    AlreadyCompletedError,
    InvalidPhaseActionError,
    InvalidPlayerCountError,
    InvalidSelectionError,
    InvalidValueError,
    NotFoundError,
)
from dart_tournament.models.match_model import RoundType, Side, TournamentMode, team_size
from dart_tournament.models.tournament_model import (
    TournamentModel,
    TournamentPhase,
    TournamentSnapshot,
)
from dart_tournament.services.match_generator import MatchGenerator, field_size
from dart_tournament.services.player_registry import PlayerRegistry
from dart_tournament.services.result_processor import ResultProcessor
from dart_tournament.services.tournament_store import TournamentStore

logger = logging.getLogger(__name__)

PHASE_ROUNDS = {
    TournamentPhase.GROUP_PLAY: RoundType.GROUP_PLAY,
    TournamentPhase.SEMI_FINALS: RoundType.SEMI_FINALS,
    TournamentPhase.FINALS: RoundType.FINALS,
    TournamentPhase.GRAND_FINALS: RoundType.GRAND_FINALS,
}

# Phases in which the operator may eliminate players or adjust losses by hand.
MANUAL_CONTROL_PHASES = (TournamentPhase.GROUP_PLAY, TournamentPhase.FINAL_SELECTION)


class PhaseController:
    """Drives tournaments in a store through their phases.

    Every public operation takes a tournament id, holds that tournament's
    lock for its whole duration and returns a ``TournamentSnapshot`` taken
    before the lock is released.

    Phase flow::

        SETUP -> GROUP_PLAY -> FINAL_SELECTION -> SEMI_FINALS -> FINALS
              -> GRAND_FINALS -> COMPLETED

    Group play repeats while more players are active than the semi-finals
    take (eight in doubles, four in singles). Final selection is skipped
    when exactly that many remain; otherwise the operator repopulates from
    the players eliminated in the last round. Knockout matches are
    generated as soon as their phase is entered. Singles tournaments end
    at the finals.
    """

    def __init__(
        self,
        store: Optional[TournamentStore] = None,
        match_generator: Optional[MatchGenerator] = None,
        result_processor: Optional[ResultProcessor] = None,
    ):
        self.store = store if store is not None else TournamentStore()
        self.match_generator = match_generator or MatchGenerator()
        self.result_processor = result_processor or ResultProcessor()

    # --- Tournament lifecycle ---

    def create_tournament(
        self,
        max_losses: Optional[int] = None,
        grand_finals: Optional[bool] = None,
        mode: Optional[TournamentMode] = None,
    ) -> TournamentSnapshot:
        if max_losses is None:
            max_losses = settings.DEFAULT_MAX_LOSSES
        if grand_finals is None:
            grand_finals = settings.GRAND_FINALS_ENABLED
        mode = self._parse_mode(mode if mode is not None else settings.DEFAULT_MODE)
        self._check_max_losses(max_losses)
        tournament = self.store.add(
            TournamentModel(max_losses=max_losses, grand_finals=grand_finals, mode=mode)
        )
        logger.info("Created %s tournament %s (max losses %d)", mode.value, tournament.id, max_losses)
        return self.get_snapshot(tournament.id)

    def delete_tournament(self, tournament_id: str) -> None:
        self.store.remove(tournament_id)

    def get_snapshot(self, tournament_id: str) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            return TournamentSnapshot.from_tournament(tournament)

    # --- Setup ---

    def add_player(self, tournament_id: str, name: str) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "add players", TournamentPhase.SETUP)
            player = PlayerRegistry(tournament).add_player(name)
            logger.info("Tournament %s: added player %s", tournament.id, player.name)
            return TournamentSnapshot.from_tournament(tournament)

    def remove_player(self, tournament_id: str, player_id: str) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "remove players", TournamentPhase.SETUP)
            player = PlayerRegistry(tournament).remove_player(player_id)
            logger.info("Tournament %s: removed player %s", tournament.id, player.name)
            return TournamentSnapshot.from_tournament(tournament)

    def set_max_losses(self, tournament_id: str, max_losses: int) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "change max losses", TournamentPhase.SETUP)
            self._check_max_losses(max_losses)
            tournament.max_losses = max_losses
            return TournamentSnapshot.from_tournament(tournament)

    def set_mode(self, tournament_id: str, mode: TournamentMode) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "change the mode", TournamentPhase.SETUP)
            tournament.mode = self._parse_mode(mode)
            logger.info("Tournament %s: mode set to %s", tournament.id, TournamentMode(tournament.mode).value)
            return TournamentSnapshot.from_tournament(tournament)

    def start(self, tournament_id: str) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "start", TournamentPhase.SETUP)
            if not tournament.players:
                raise InvalidPlayerCountError("A tournament needs at least one player to start.")
            self._check_max_losses(tournament.max_losses)
            self._set_phase(tournament, TournamentPhase.GROUP_PLAY)
            self._advance(tournament)
            return TournamentSnapshot.from_tournament(tournament)

    # --- Rounds ---

    def generate_matches(self, tournament_id: str) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "generate matches", *PHASE_ROUNDS)
            if tournament.round_pending:
                raise InvalidPhaseActionError("The current round still has matches without a result.")
            self._generate_round(tournament)
            if not tournament.matches:
                self._advance(tournament)
            return TournamentSnapshot.from_tournament(tournament)

    def record_winner(self, tournament_id: str, match_id: str, side: Side) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "record results", *PHASE_ROUNDS)
            match = tournament.match_by_id(match_id)
            if match is None or match.is_decided:
                raise NotFoundError(f"Match with ID {match_id} not found in the current round.")
            try:
                side = Side(side)
            except ValueError as e:
                raise InvalidValueError(f"Invalid winning side {side!r}.") from e
            tournament.pending_results[match_id] = side
            return TournamentSnapshot.from_tournament(tournament)

    def submit_results(self, tournament_id: str, results: Optional[Mapping[str, Side]] = None) -> TournamentSnapshot:
        """
        Submits the current round.

        Explicit ``results`` are merged over winners recorded earlier with
        ``record_winner``. Nothing is applied unless every match has a winner.
        """
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "submit results", *PHASE_ROUNDS)
            if not tournament.matches:
                raise InvalidPhaseActionError("There is no round to submit; generate matches first.")

            merged = dict(tournament.pending_results)
            merged.update(results or {})
            decided, active_count = self.result_processor.process(tournament, tournament.matches, merged)

            tournament.history.extend(decided)
            tournament.matches = []
            tournament.sit_out_ids = []
            tournament.pending_results = {}
            logger.info(
                "Tournament %s: %s round submitted, %d player(s) active",
                tournament.id, TournamentPhase(tournament.phase).value, active_count,
            )
            self._advance(tournament)
            return TournamentSnapshot.from_tournament(tournament)

    # --- Manual controls ---

    def force_eliminate(self, tournament_id: str, player_id: str) -> TournamentSnapshot:
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "eliminate players", *MANUAL_CONTROL_PHASES)
            registry = PlayerRegistry(tournament)
            player = self._require_active(registry, player_id)
            self._require_not_playing(tournament, player_id)
            registry.eliminate([player_id])
            logger.info("Tournament %s: player %s eliminated manually", tournament.id, player.name)
            self._advance(tournament)
            return TournamentSnapshot.from_tournament(tournament)

    def adjust_losses(self, tournament_id: str, player_id: str, delta: int) -> TournamentSnapshot:
        """
        Adjusts an active player's losses by one; reaching the limit eliminates them.

        Before the first group round is generated the elimination is deferred:
        the player keeps playing and is eliminated when that round is processed.
        """
        if delta not in (1, -1):
            raise InvalidValueError(f"Losses can only be adjusted by +1 or -1, got {delta}.")
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "adjust losses", *MANUAL_CONTROL_PHASES)
            registry = PlayerRegistry(tournament)
            player = self._require_active(registry, player_id)
            losses = max(0, player.losses + delta)
            before_first_round = (
                TournamentPhase(tournament.phase) == TournamentPhase.GROUP_PLAY
                and not tournament.matches
                and not tournament.history
            )
            if losses >= tournament.max_losses and not before_first_round:
                self._require_not_playing(tournament, player_id)
                player.losses = losses
                registry.eliminate([player_id])
                logger.info(
                    "Tournament %s: player %s reached %d loss(es) and is eliminated",
                    tournament.id, player.name, losses,
                )
                self._advance(tournament)
            else:
                player.losses = losses
                logger.debug("Tournament %s: player %s now has %d loss(es)", tournament.id, player.name, losses)
            return TournamentSnapshot.from_tournament(tournament)

    def repopulate(self, tournament_id: str, player_ids: Iterable[str]) -> TournamentSnapshot:
        """Tops the active pool up to the semi-final field from the last eliminated batch."""
        player_ids = list(player_ids)
        with self.store.locked(tournament_id) as tournament:
            self._require_phase(tournament, "repopulate", TournamentPhase.FINAL_SELECTION)
            needed = field_size(tournament.mode, RoundType.SEMI_FINALS) - len(tournament.active_ids)
            if len(player_ids) != needed or len(set(player_ids)) != len(player_ids):
                raise InvalidSelectionError(
                    f"Must select exactly {needed} distinct player(s) to rejoin (selected {len(player_ids)})."
                )
            foreign = [pid for pid in player_ids if pid not in tournament.last_eliminated_ids]
            if foreign:
                raise InvalidSelectionError(
                    f"Player with ID {foreign[0]} was not eliminated in the last round."
                )
            PlayerRegistry(tournament).reinstate(player_ids)
            logger.info("Tournament %s: %d player(s) rejoined for the semi-finals", tournament.id, needed)
            self._advance(tournament)
            return TournamentSnapshot.from_tournament(tournament)

    def restart(self, tournament_id: str) -> TournamentSnapshot:
        """Back to setup with the same roster and every stat zeroed."""
        with self.store.locked(tournament_id) as tournament:
            PlayerRegistry(tournament).reset_stats()
            self._clear_rounds(tournament)
            self._set_phase(tournament, TournamentPhase.SETUP)
            return TournamentSnapshot.from_tournament(tournament)

    def reset(self, tournament_id: str) -> TournamentSnapshot:
        """Back to setup with an empty roster."""
        with self.store.locked(tournament_id) as tournament:
            PlayerRegistry(tournament).clear()
            self._clear_rounds(tournament)
            self._set_phase(tournament, TournamentPhase.SETUP)
            return TournamentSnapshot.from_tournament(tournament)

    # --- Internals; callers hold the tournament lock ---

    def _advance(self, tournament: TournamentModel) -> None:
        """Follow every transition the active count allows; stops at a pending round."""
        while not tournament.round_pending:
            phase = TournamentPhase(tournament.phase)
            mode = TournamentMode(tournament.mode)
            active = len(tournament.active_ids)
            semi_field = field_size(mode, RoundType.SEMI_FINALS)
            if phase == TournamentPhase.GROUP_PLAY and active <= semi_field:
                self._set_phase(tournament, TournamentPhase.FINAL_SELECTION)
            elif phase == TournamentPhase.FINAL_SELECTION and active == semi_field:
                self._enter_knockout(tournament, TournamentPhase.SEMI_FINALS)
            elif phase == TournamentPhase.SEMI_FINALS and active == field_size(mode, RoundType.FINALS):
                self._enter_knockout(tournament, TournamentPhase.FINALS)
            elif phase == TournamentPhase.FINALS and active == team_size(mode, RoundType.FINALS):
                if tournament.grand_finals and mode == TournamentMode.TWO_V_TWO:
                    self._enter_knockout(tournament, TournamentPhase.GRAND_FINALS)
                else:
                    self._complete(tournament)
            elif phase == TournamentPhase.GRAND_FINALS and active == 1:
                self._complete(tournament)
            else:
                break

    def _enter_knockout(self, tournament: TournamentModel, phase: TournamentPhase) -> None:
        self._set_phase(tournament, phase)
        self._generate_round(tournament)

    def _generate_round(self, tournament: TournamentModel) -> None:
        registry = PlayerRegistry(tournament)
        round_type = PHASE_ROUNDS[TournamentPhase(tournament.phase)]
        matches, sit_outs = self.match_generator.generate(
            registry.active_players(), round_type, TournamentMode(tournament.mode)
        )
        tournament.matches = matches
        tournament.sit_out_ids = [p.id for p in sit_outs]
        tournament.pending_results = {}

    def _complete(self, tournament: TournamentModel) -> None:
        tournament.winner_ids = list(tournament.active_ids)
        self._set_phase(tournament, TournamentPhase.COMPLETED)
        winners = ", ".join(tournament.players[pid].name for pid in tournament.winner_ids)
        logger.info("Tournament %s completed; winner(s): %s", tournament.id, winners)

    def _clear_rounds(self, tournament: TournamentModel) -> None:
        tournament.matches = []
        tournament.sit_out_ids = []
        tournament.pending_results = {}
        tournament.history = []
        tournament.winner_ids = []

    def _set_phase(self, tournament: TournamentModel, phase: TournamentPhase) -> None:
        previous = TournamentPhase(tournament.phase)
        tournament.phase = phase
        logger.info("Tournament %s: %s -> %s", tournament.id, previous.value, phase.value)

    def _require_phase(self, tournament: TournamentModel, action: str, *phases: TournamentPhase) -> None:
        phase = TournamentPhase(tournament.phase)
        if phase == TournamentPhase.COMPLETED:
            logger.warning("Tournament %s: cannot %s, tournament is completed", tournament.id, action)
            raise AlreadyCompletedError(f"Cannot {action}: the tournament is completed.")
        if phase not in phases:
            logger.warning("Tournament %s: cannot %s during %s", tournament.id, action, phase.value)
            raise InvalidPhaseActionError(f"Cannot {action} during {phase.value}.")

    def _require_active(self, registry: PlayerRegistry, player_id: str):
        player = registry.get(player_id)
        if not registry.is_active(player_id):
            raise InvalidPhaseActionError(f"Player {player.name} is already eliminated.")
        return player

    def _require_not_playing(self, tournament: TournamentModel, player_id: str) -> None:
        for match in tournament.matches:
            if not match.is_decided and player_id in match.player_ids:
                raise InvalidPhaseActionError(
                    "Player is on a match of the current round; submit the round first."
                )

    @staticmethod
    def _check_max_losses(max_losses: int) -> None:
        if max_losses < 1:
            raise InvalidValueError(f"Max losses must be at least 1, got {max_losses}.")

    @staticmethod
    def _parse_mode(mode) -> TournamentMode:
        try:
            return TournamentMode(mode)
        except ValueError as e:
            raise InvalidValueError(f"Unknown tournament mode {mode!r}.") from e
