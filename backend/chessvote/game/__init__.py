"""Room state: ballots, tally, countdown and move resolution.

Transport-free; socket handlers and HTTP routes call into ``RoomService``.
"""
