from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .timer import RoomTimer


Mode = Literal["poll", "game", "observe"]
MODES: tuple[str, ...] = ("poll", "game", "observe")

# Roster label for voters who never sent a display name; participant ids stay private.
ANONYMOUS_NAME = "Anonymous"


@dataclass
class Ballot:
    move: str
    # Name the vote was filed under, so the matching roster entry can be pruned.
    name: str


@dataclass
class Room:
    id: str
    position: str
    mode: Mode = "poll"
    revealed: bool = False
    instructions: str = ""
    history: list[str] = field(default_factory=list)
    ballots: dict[str, Ballot] = field(default_factory=dict)
    # Derived from ballots; key order is first-insertion order (tie-break).
    tally: dict[str, int] = field(default_factory=dict)
    voters_by_move: dict[str, list[str]] = field(default_factory=dict)
    participant_names: dict[str, str] = field(default_factory=dict)
    timer_length: int = 10
    reveal_at: int = 3
    timer: RoomTimer = field(default_factory=RoomTimer)
