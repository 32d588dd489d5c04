from __future__ import annotations

# Client -> server intents
JOIN_GAME = "join_game"
SUBMIT_VOTE = "submit_vote"
RETRACT_VOTE = "retract_vote"
UPDATE_BOARD = "update_board"
SET_MODE = "set_mode"
INSTRUCTIONS_UPDATE = "instructions_update"
RESET_REVEAL = "reset_reveal"

# Server -> client events
BOARD_UPDATE = "board_update"
VOTE_TALLY = "vote_tally"
MODE_UPDATE = "mode_update"
TIMER_UPDATE = "timer_update"
# INSTRUCTIONS_UPDATE and RESET_REVEAL share their name with the intent.
ERROR = "error"
