import random

from chess import STARTING_FEN


def test_join_creates_default_room(service, gateway):
    state = service.join('g1', 'u1', 'Alice')
    assert state == {
        'roomId': 'g1',
        'position': STARTING_FEN,
        'history': [],
        'mode': 'poll',
        'revealed': False,
        'tally': {},
        'votersByMove': {},
        'instructions': '',
    }
    # Snapshot goes to the joiner only.
    assert gateway.sent == []


def test_join_without_name_keeps_known_name(service):
    service.join('g1', 'u1', 'Alice')
    service.join('g1', 'u1')
    assert service.get_room('g1').participant_names == {'u1': 'Alice'}


def test_join_snapshot_includes_timer_in_game_mode(service):
    service.set_mode('g1', 'game', False, 5, 2)
    state = service.join('g1', 'u2')
    assert state['timer'] == {'remaining': 5, 'revealAt': 2, 'length': 5}


def test_submit_vote_updates_tally_and_roster(service, gateway):
    service.join('g1', 'u1', 'Alice')
    payload = service.submit_vote('g1', 'u1', 'e2e4', 'Alice')
    assert payload == {'tally': {'e2e4': 1}, 'votersByMove': {'e2e4': ['Alice']}, 'revealed': False}
    assert gateway.sent == [('g1', 'vote_tally', payload)]


def test_vote_creates_unknown_room(service):
    service.submit_vote('fresh', 'u1', 'd2d4')
    room = service.get_room('fresh')
    assert room is not None
    assert room.tally == {'d2d4': 1}
    # No name known yet: the participant id is never shown to the room.
    assert room.voters_by_move == {'d2d4': ['Anonymous']}


def test_revote_moves_ballot(service):
    service.submit_vote('g1', 'u1', 'e2e4', 'Alice')
    service.submit_vote('g1', 'u2', 'e2e4', 'Bob')
    payload = service.submit_vote('g1', 'u1', 'd2d4', 'Alice')
    assert payload['tally'] == {'e2e4': 1, 'd2d4': 1}
    assert payload['votersByMove'] == {'e2e4': ['Bob'], 'd2d4': ['Alice']}


def test_identical_revote_is_idempotent(service):
    service.submit_vote('g1', 'u1', 'e2e4', 'Alice')
    service.submit_vote('g1', 'u2', 'd2d4', 'Bob')
    payload = service.submit_vote('g1', 'u1', 'e2e4', 'Alice')
    assert payload['tally'] == {'e2e4': 1, 'd2d4': 1}
    # Insertion order (used for tie-breaks) is not disturbed.
    assert list(payload['tally']) == ['e2e4', 'd2d4']


def test_any_move_string_is_accepted(service):
    payload = service.submit_vote('g1', 'u1', 'not-a-move')
    assert payload['tally'] == {'not-a-move': 1}


def test_retract_vote(service, gateway):
    service.submit_vote('g1', 'u1', 'e2e4', 'Alice')
    payload = service.retract_vote('g1', 'u1', 'e2e4')
    assert payload['tally'] == {}
    assert payload['votersByMove'] == {}
    assert gateway.names() == ['vote_tally', 'vote_tally']


def test_retract_without_ballot_is_noop(service):
    service.submit_vote('g1', 'u1', 'e2e4', 'Alice')
    payload = service.retract_vote('g1', 'u2', 'e2e4')
    assert payload['tally'] == {'e2e4': 1}


def test_retract_unknown_room_does_nothing(service, gateway):
    assert service.retract_vote('ghost', 'u1', 'e2e4') is None
    assert 'ghost' not in service.registry
    assert gateway.sent == []


def test_shared_display_name_survives_one_retraction(service):
    service.submit_vote('g1', 'u1', 'e2e4', 'Sam')
    service.submit_vote('g1', 'u2', 'e2e4', 'Sam')
    assert service.get_room('g1').voters_by_move == {'e2e4': ['Sam']}
    payload = service.retract_vote('g1', 'u1')
    assert payload['tally'] == {'e2e4': 1}
    assert payload['votersByMove'] == {'e2e4': ['Sam']}


def test_tally_stays_consistent_with_ballots(service):
    rng = random.Random(42)
    participants = [f'u{i}' for i in range(8)]
    moves = ['e2e4', 'd2d4', 'g1f3', 'c2c4']
    service.join('g1', 'teacher')

    for _ in range(500):
        pid = rng.choice(participants)
        if rng.random() < 0.3:
            service.retract_vote('g1', pid)
        else:
            service.submit_vote('g1', pid, rng.choice(moves), name=f'name-{pid}')

        room = service.get_room('g1')
        assert sum(room.tally.values()) == len(room.ballots)
        for move, count in room.tally.items():
            assert count == sum(1 for b in room.ballots.values() if b.move == move)
            assert count > 0
        listed = [n for roster in room.voters_by_move.values() for n in roster]
        assert len(listed) == len(set(listed)) == len(room.ballots)
        assert set(room.voters_by_move) == set(room.tally)


def test_instructions_need_existing_room(service, gateway):
    assert service.set_instructions('ghost', 'hello') is False
    assert gateway.sent == []

    service.join('g1', 'teacher')
    assert service.set_instructions('g1', 'Find the fork') is True
    assert gateway.sent == [('g1', 'instructions_update', {'text': 'Find the fork'})]
    assert service.join('g1', 'u1')['instructions'] == 'Find the fork'


def test_reset_reveal_keeps_ballots(service, gateway):
    service.set_mode('g1', 'poll', True)
    service.submit_vote('g1', 'u1', 'e2e4', 'Alice')
    gateway.clear()

    assert service.reset_reveal('g1') is True
    room = service.get_room('g1')
    assert room.revealed is False
    assert room.tally == {'e2e4': 1}
    assert gateway.names() == ['vote_tally', 'reset_reveal']
    assert gateway.last('vote_tally')['revealed'] is False
    assert gateway.last('reset_reveal') is None


def test_reset_reveal_unknown_room(service, gateway):
    assert service.reset_reveal('ghost') is False
    assert gateway.sent == []


def test_unnamed_voters_share_anonymous_label(service):
    service.submit_vote('g1', 'u1', 'e2e4')
    payload = service.submit_vote('g1', 'u2', 'e2e4')
    assert payload['votersByMove'] == {'e2e4': ['Anonymous']}
    assert 'u1' not in str(payload) and 'u2' not in str(payload)

    payload = service.retract_vote('g1', 'u1')
    assert payload['tally'] == {'e2e4': 1}
    assert payload['votersByMove'] == {'e2e4': ['Anonymous']}
