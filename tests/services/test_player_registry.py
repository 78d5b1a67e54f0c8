import pytest

from dart_tournament.core.exceptions import (
    DuplicatePlayerError,
    InvalidPlayerNameError,
    NotFoundError,
)
from dart_tournament.models.tournament_model import TournamentModel
from dart_tournament.services.player_registry import PlayerRegistry


@pytest.fixture
def tournament():
    return TournamentModel(max_losses=3)

@pytest.fixture
def registry(tournament):
    return PlayerRegistry(tournament)


class TestPlayerRegistryAddRemove:

    def test_add_player_assigns_id_and_seed(self, registry: PlayerRegistry, tournament: TournamentModel):
        alice = registry.add_player("Alice")
        bob = registry.add_player("Bob")

        assert alice.id != bob.id
        assert alice.seed == 0
        assert bob.seed == 1
        assert tournament.active_ids == [alice.id, bob.id]
        assert tournament.players[alice.id] is alice

    def test_add_player_trims_name(self, registry: PlayerRegistry):
        player = registry.add_player("  Carol  ")
        assert player.name == "Carol"

    def test_add_player_rejects_blank_name(self, registry: PlayerRegistry):
        with pytest.raises(InvalidPlayerNameError):
            registry.add_player("   ")

    def test_add_player_rejects_duplicate_name_ignoring_case(self, registry: PlayerRegistry):
        registry.add_player("Dave")
        with pytest.raises(DuplicatePlayerError, match="already exists"):
            registry.add_player("dAVE ")

    def test_seed_never_decreases_after_removal(self, registry: PlayerRegistry):
        first = registry.add_player("P0")
        registry.add_player("P1")
        registry.remove_player(first.id)
        newest = registry.add_player("P2")
        assert newest.seed == 2

    def test_remove_player(self, registry: PlayerRegistry, tournament: TournamentModel):
        player = registry.add_player("Eve")
        removed = registry.remove_player(player.id)
        assert removed is player
        assert player.id not in tournament.players
        assert tournament.active_ids == []

    def test_remove_unknown_player_raises_not_found(self, registry: PlayerRegistry):
        with pytest.raises(NotFoundError):
            registry.remove_player("nonexistent_id")


class TestPlayerRegistryStats:

    def test_record_win_loss_sit_out(self, registry: PlayerRegistry):
        player = registry.add_player("Frank")
        registry.record_win(player.id)
        registry.record_loss(player.id)
        registry.record_loss(player.id)
        registry.record_sit_out(player.id)

        assert player.wins == 1
        assert player.losses == 2
        assert player.times_sat_out == 1
        assert player.internal_times_sat_out == 1
        # Elimination is the caller's decision.
        assert player.eliminated is False

    @pytest.mark.parametrize("method", ["record_win", "record_loss", "record_sit_out"])
    def test_record_unknown_player_raises_not_found(self, registry: PlayerRegistry, method):
        with pytest.raises(NotFoundError):
            getattr(registry, method)("ghost")

    def test_stats_view(self, registry: PlayerRegistry):
        player = registry.add_player("Grace")
        registry.record_loss(player.id)
        stats = player.stats
        assert stats.losses == 1
        assert stats.wins == 0
        assert stats.eliminated is False


class TestPlayerRegistryPartition:

    def test_eliminate_and_reinstate_move_ids_without_copying(self, registry: PlayerRegistry, tournament: TournamentModel):
        players = [registry.add_player(f"P{i}") for i in range(3)]
        target = players[1]
        tournament.last_eliminated_ids = [target.id]

        registry.eliminate([target.id])
        assert target.eliminated is True
        assert target.id not in tournament.active_ids
        assert tournament.eliminated_ids == [target.id]
        assert registry.eliminated_players()[0] is target

        registry.reinstate([target.id])
        assert target.eliminated is False
        assert target.id in tournament.active_ids
        assert tournament.eliminated_ids == []
        assert tournament.last_eliminated_ids == []

    def test_partition_covers_roster(self, registry: PlayerRegistry, tournament: TournamentModel):
        players = [registry.add_player(f"P{i}") for i in range(5)]
        registry.eliminate([players[0].id, players[3].id])

        active = set(tournament.active_ids)
        eliminated = set(tournament.eliminated_ids)
        assert active.isdisjoint(eliminated)
        assert active | eliminated == set(tournament.players)

    def test_reset_stats_restores_roster_in_seed_order(self, registry: PlayerRegistry, tournament: TournamentModel):
        players = [registry.add_player(f"P{i}") for i in range(4)]
        registry.record_loss(players[2].id)
        registry.eliminate([players[2].id, players[0].id])

        registry.reset_stats()

        assert tournament.active_ids == [p.id for p in players]
        assert tournament.eliminated_ids == []
        assert all(p.losses == 0 and not p.eliminated for p in players)

    def test_clear_discards_roster(self, registry: PlayerRegistry, tournament: TournamentModel):
        registry.add_player("Heidi")
        registry.clear()
        assert tournament.players == {}
        assert tournament.active_ids == []
        assert registry.add_player("Ivan").seed == 0
