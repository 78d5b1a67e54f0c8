"""Errors raised by the tournament engine.

Every error is a caller contract violation, never a transient condition,
so nothing here is retried. They all derive from ``ValueError`` so a
transport layer that maps ``ValueError`` to a 400 response keeps working.
"""


class TournamentError(ValueError):
    """Base class for all tournament engine errors."""

    pass


class NotFoundError(TournamentError, LookupError):
    """Raised when a tournament, player or match identity is unknown."""

    pass


class IncompleteResultsError(TournamentError):
    """Raised when a round is submitted without a winner for every match."""

    pass


class InvalidSelectionError(TournamentError):
    """Raised when a repopulate selection has the wrong size or foreign ids."""

    pass


class InvalidPlayerCountError(TournamentError):
    """Raised when a knockout round is generated from a pool of the wrong size."""

    pass


class AlreadyCompletedError(TournamentError):
    """Raised when a completed tournament is mutated other than by restart/reset."""

    pass


class InvalidPhaseActionError(TournamentError):
    """Raised when an action is not permitted in the current phase."""

    pass


class DuplicatePlayerError(TournamentError):
    """Raised when a player name is already registered (case-insensitive)."""

    pass


class InvalidPlayerNameError(TournamentError):
    """Raised when a player name is empty after trimming."""

    pass


class InvalidValueError(TournamentError):
    """Raised when a setting or adjustment value is out of range."""

    pass
