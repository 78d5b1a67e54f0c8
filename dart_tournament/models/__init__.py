from .player_model import PlayerModel, PlayerStats
from .match_model import MatchModel, RoundType, Side, TournamentMode, TEAM_SIZES, team_size
from .tournament_model import TournamentModel, TournamentPhase, TournamentSnapshot
