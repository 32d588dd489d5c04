from __future__ import annotations

import logging
import random
from typing import Any, Iterable

from ..errors import InvalidMode
from ..realtime import events
from ..realtime.gateway import Gateway
from . import rules
from .models import ANONYMOUS_NAME, MODES, Ballot, Room
from .registry import RoomRegistry
from .timer import TimerScheduler

logger = logging.getLogger(__name__)


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


class RoomService:
    """Authoritative per-room state machine.

    Every intent and every timer tick runs under ``registry.lock`` and
    broadcasts its resulting events through ``gateway`` before releasing it.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        gateway: Gateway,
        scheduler: TimerScheduler | None = None,
        rng: random.Random | None = None,
        default_timer_length: int = 10,
        default_reveal_at: int = 3,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.default_timer_length = default_timer_length
        self.default_reveal_at = default_reveal_at

    # ---- rooms ----

    def _new_room(self, room_id: str) -> Room:
        return Room(
            id=room_id,
            position=rules.starting_position(),
            timer_length=self.default_timer_length,
            reveal_at=self.default_reveal_at,
        )

    def _room(self, room_id: str) -> Room:
        return self.registry.get_or_create(room_id, self._new_room)

    def get_room(self, room_id: str) -> Room | None:
        return self.registry.get(room_id)

    def list_rooms(self) -> list[Room]:
        return self.registry.list()

    def snapshot(self, room_id: str) -> dict | None:
        with self.registry.lock:
            room = self.registry.get(room_id)
            if room is None:
                return None
            return self._snapshot(room)

    def close(self) -> None:
        self.registry.close()

    # ---- payloads ----

    @staticmethod
    def _snapshot(room: Room) -> dict:
        payload = {
            "roomId": room.id,
            "position": room.position,
            "history": list(room.history),
            "mode": room.mode,
            "revealed": room.revealed,
            "tally": dict(room.tally),
            "votersByMove": {m: list(names) for m, names in room.voters_by_move.items()},
            "instructions": room.instructions,
        }
        if room.mode == "game":
            payload["timer"] = room.timer.public()
        return payload

    @staticmethod
    def tally_payload(room: Room) -> dict:
        return {
            "tally": dict(room.tally),
            "votersByMove": {m: list(names) for m, names in room.voters_by_move.items()},
            "revealed": room.revealed,
        }

    @staticmethod
    def board_payload(room: Room) -> dict:
        return {"position": room.position, "history": list(room.history)}

    @staticmethod
    def mode_payload(room: Room) -> dict:
        return {"mode": room.mode, "revealed": room.revealed}

    @staticmethod
    def timer_payload(room: Room) -> dict:
        return {"remaining": room.timer.remaining, "revealAt": room.timer.reveal_at}

    def _broadcast_tally(self, room: Room) -> None:
        self.gateway.emit(room.id, events.VOTE_TALLY, self.tally_payload(room))

    def _broadcast_board(self, room: Room) -> None:
        self.gateway.emit(room.id, events.BOARD_UPDATE, self.board_payload(room))

    def _broadcast_mode(self, room: Room) -> None:
        self.gateway.emit(room.id, events.MODE_UPDATE, self.mode_payload(room))

    def _broadcast_timer(self, room: Room) -> None:
        self.gateway.emit(room.id, events.TIMER_UPDATE, self.timer_payload(room))

    # ---- ballots ----

    @staticmethod
    def _remember_name(room: Room, participant_id: str, name: str | None) -> None:
        if name:
            room.participant_names[participant_id] = name

    @staticmethod
    def _withdraw(room: Room, participant_id: str) -> str | None:
        ballot = room.ballots.pop(participant_id, None)
        if ballot is None:
            return None

        move = ballot.move
        count = room.tally.get(move)
        if count is not None:
            if count <= 1:
                del room.tally[move]
            else:
                room.tally[move] = count - 1

        if move not in room.tally:
            room.voters_by_move.pop(move, None)
        else:
            roster = room.voters_by_move.get(move, [])
            shared = any(b.move == move and b.name == ballot.name for b in room.ballots.values())
            if not shared and ballot.name in roster:
                roster.remove(ballot.name)
        return move

    def _cast(self, room: Room, participant_id: str, move: str) -> None:
        name = room.participant_names.get(participant_id, ANONYMOUS_NAME)
        prior = room.ballots.get(participant_id)
        if prior is not None and prior.move == move and prior.name == name:
            return

        self._withdraw(room, participant_id)
        room.ballots[participant_id] = Ballot(move=move, name=name)
        room.tally[move] = room.tally.get(move, 0) + 1
        roster = room.voters_by_move.setdefault(move, [])
        if name not in roster:
            roster.append(name)

    @staticmethod
    def _clear_ballots(room: Room) -> None:
        room.ballots.clear()
        room.tally.clear()
        room.voters_by_move.clear()

    # ---- intents ----

    def join(self, room_id: str, participant_id: str, name: str | None = None) -> dict:
        with self.registry.lock:
            room = self._room(room_id)
            self._remember_name(room, participant_id, name)
            return self._snapshot(room)

    def submit_vote(self, room_id: str, participant_id: str, move: str, name: str | None = None) -> dict:
        with self.registry.lock:
            room = self._room(room_id)
            self._remember_name(room, participant_id, name)
            self._cast(room, participant_id, move)
            logger.debug("vote room=%s participant=%s move=%s tally=%s", room_id, participant_id, move, room.tally)
            self._broadcast_tally(room)
            return self.tally_payload(room)

    def retract_vote(self, room_id: str, participant_id: str, move: str | None = None) -> dict | None:
        with self.registry.lock:
            room = self.registry.get(room_id)
            if room is None:
                return None
            withdrawn = self._withdraw(room, participant_id)
            logger.debug("retract room=%s participant=%s move=%s withdrawn=%s", room_id, participant_id, move, withdrawn)
            self._broadcast_tally(room)
            return self.tally_payload(room)

    def apply_position(self, room_id: str, position: str, history: Iterable[str] | None = None) -> dict:
        """Teacher overwrite of position and history. Raises InvalidPosition."""
        rules.parse_position(position)
        with self.registry.lock:
            room = self._room(room_id)
            room.position = position
            room.history = [str(m) for m in (history or [])]
            self._clear_ballots(room)
            logger.info("position loaded room=%s plies=%d", room_id, len(room.history))
            self._broadcast_board(room)
            self._broadcast_tally(room)
            if room.mode == "game":
                self._start_timer(room)
            return self.board_payload(room)

    def set_mode(
        self,
        room_id: str,
        mode: str,
        revealed: bool = False,
        timer_length: Any = None,
        reveal_at: Any = None,
    ) -> dict:
        if mode not in MODES:
            raise InvalidMode(f"Unknown mode {mode!r}")

        with self.registry.lock:
            room = self._room(room_id)
            room.mode = mode  # type: ignore[assignment]
            room.revealed = bool(revealed)
            if mode == "game":
                # Each countdown hides the votes until it reaches reveal_at.
                room.revealed = False
                self._configure_timer(room, timer_length, reveal_at)
                self._start_timer(room)
            else:
                room.timer.stop()
                self._broadcast_mode(room)
            logger.info(
                "mode room=%s mode=%s revealed=%s timer=%s/%s",
                room_id, room.mode, room.revealed, room.timer_length, room.reveal_at,
            )
            return self.mode_payload(room)

    def set_instructions(self, room_id: str, text: str) -> bool:
        with self.registry.lock:
            room = self.registry.get(room_id)
            if room is None:
                return False
            room.instructions = text or ""
            self.gateway.emit(room_id, events.INSTRUCTIONS_UPDATE, {"text": room.instructions})
            return True

    def reset_reveal(self, room_id: str) -> bool:
        with self.registry.lock:
            room = self.registry.get(room_id)
            if room is None:
                return False
            room.revealed = False
            self._broadcast_tally(room)
            self.gateway.emit(room_id, events.RESET_REVEAL)
            return True

    def resolve(self, room_id: str) -> str | None:
        """Force resolution now. Returns the SAN of the applied move, if any."""
        with self.registry.lock:
            room = self.registry.get(room_id)
            if room is None:
                return None
            san = self._resolve(room)
            if room.mode == "game":
                self._start_timer(room)
            return san

    # ---- timer ----

    def _configure_timer(self, room: Room, timer_length: Any, reveal_at: Any) -> None:
        length = (
            _positive_int(timer_length)
            or _positive_int(room.timer_length)
            or self.default_timer_length
        )
        for candidate in (reveal_at, room.reveal_at, self.default_reveal_at):
            reveal = _positive_int(candidate)
            if reveal is not None and reveal < length:
                break
        else:
            reveal = max(length - 1, 0)
        room.timer_length = length
        room.reveal_at = reveal

    def _start_timer(self, room: Room) -> None:
        generation = room.timer.start(room.timer_length, room.reveal_at)
        self._broadcast_tally(room)
        self._broadcast_timer(room)
        self._broadcast_mode(room)
        if self.scheduler is not None:
            self.scheduler.schedule(room.id, generation, self.tick, on_error=self._abandon_timer)

    def _abandon_timer(self, room_id: str, generation: int) -> None:
        """Park a countdown whose runner died so snapshots stop showing it as live."""
        with self.registry.lock:
            room = self.registry.get(room_id)
            if room is None or room.timer.generation != generation:
                return
            room.timer.stop()
            logger.warning("timer abandoned room=%s generation=%s", room_id, generation)

    def tick(self, room_id: str, generation: int) -> bool:
        """Advance the room countdown by one second.

        Returns False once ``generation`` is no longer the live countdown,
        which tells the background runner to exit.
        """
        with self.registry.lock:
            room = self.registry.get(room_id)
            if room is None or room.mode != "game":
                return False
            if not room.timer.running or room.timer.generation != generation:
                return False

            outcome = room.timer.step()
            self._broadcast_timer(room)

            if outcome.reveal:
                room.revealed = True
                self._broadcast_mode(room)
                self._broadcast_tally(room)

            if not outcome.expired:
                return True

            self._resolve(room)
            self._start_timer(room)
            return False

    # ---- resolution ----

    def pick_move(self, room: Room) -> str | None:
        legal = rules.legal_moves(room.position)
        if not legal:
            return None

        choice = None
        if room.tally:
            top = max(room.tally.values())
            choice = next(m for m, count in room.tally.items() if count == top)
        if choice is None or choice not in legal:
            choice = self.rng.choice(legal)
        return choice

    def _resolve(self, room: Room) -> str | None:
        move = self.pick_move(room)
        if move is None:
            logger.info("resolve room=%s no legal moves", room.id)
            return None

        position, san = rules.apply_move(room.position, move)
        room.position = position
        room.history.append(san)
        self._clear_ballots(room)
        room.revealed = False
        logger.info("resolve room=%s move=%s san=%s", room.id, move, san)
        self._broadcast_board(room)
        self._broadcast_tally(room)
        return san
