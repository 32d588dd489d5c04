"""Thin adapter over python-chess.

The voting core never inspects pieces or squares itself; everything it needs
to know about chess goes through these four calls. Positions travel as FEN
strings and moves as UCI strings ("e2e4", "e7e8q").
"""

from __future__ import annotations

import chess

from ..errors import IllegalMove, InvalidPosition


def starting_position() -> str:
    return chess.STARTING_FEN


def parse_position(fen: str) -> chess.Board:
    if not isinstance(fen, str):
        raise InvalidPosition("position must be a FEN string")
    try:
        board = chess.Board(fen)
    except ValueError as exc:
        raise InvalidPosition(f"Invalid FEN: {exc}") from exc
    if not board.is_valid():
        raise InvalidPosition(f"Invalid FEN: {board.status()!r}")
    return board


def legal_moves(fen: str) -> list[str]:
    """Legal moves for ``fen`` in python-chess generation order."""
    return [move.uci() for move in parse_position(fen).legal_moves]


def apply_move(fen: str, uci: str) -> tuple[str, str]:
    """Play ``uci`` on ``fen`` and return ``(new_fen, san)``."""
    board = parse_position(fen)
    try:
        move = chess.Move.from_uci(uci)
    except ValueError as exc:
        raise IllegalMove(f"Malformed move {uci!r}") from exc
    if move not in board.legal_moves:
        raise IllegalMove(f"Illegal move {uci!r}")
    san = board.san(move)
    board.push(move)
    return board.fen(), san
