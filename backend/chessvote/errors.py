from __future__ import annotations


class ChessVoteError(Exception):
    """Base class for errors reported back to the client that sent an intent."""

    code = "error"


class InvalidPosition(ChessVoteError):
    code = "invalid_position"


class IllegalMove(ChessVoteError):
    code = "illegal_move"


class InvalidMode(ChessVoteError):
    code = "invalid_mode"
