"""Tests for per-connection message dispatch."""

import json

import pytest

from superxo.handler import ConnectionHandler
from superxo.protocol import parse_client_message


@pytest.fixture
def connect(registry, make_peer):
    def factory():
        peer = make_peer()
        return peer, ConnectionHandler(registry, peer)

    return factory


def send(handler, **message):
    handler.handle_text(json.dumps(message))


def start_match(connect):
    host_peer, host = connect()
    guest_peer, guest = connect()
    send(host, type="create")
    code = host_peer.last("created")["code"]
    send(guest, type="join", code=code)
    return code, (host_peer, host), (guest_peer, guest)


def test_create_then_join_starts_both_players(connect):
    code, (host_peer, host), (guest_peer, guest) = start_match(connect)

    assert host_peer.types() == ["created", "start"]
    assert guest_peer.types() == ["joined", "start"]
    assert guest_peer.last("joined") == {"type": "joined", "code": code, "slotIndex": 1}
    assert (host.code, host.slot) == (code, 0)
    assert (guest.code, guest.slot) == (code, 1)
    assert host_peer.last("start") == guest_peer.last("start")


def test_join_errors_are_reported_without_state_change(connect):
    code, _, _ = start_match(connect)
    peer, handler = connect()

    send(handler, type="join", code="ZZZZZ")
    send(handler, type="join", code=code)

    assert peer.sent == [
        {"type": "error", "msg": "Room not found."},
        {"type": "error", "msg": "Room is full."},
    ]
    assert handler.code is None
    assert handler.slot is None


def test_moves_follow_turn_order(connect):
    _, (host_peer, host), (guest_peer, guest) = start_match(connect)

    send(guest, type="move", boardIndex=4, cellIndex=0)  # not guest's turn
    assert guest_peer.types() == ["joined", "start"]

    send(host, type="move", boardIndex=4, cellIndex=0)
    update = host_peer.last("update")
    assert update == guest_peer.last("update")
    assert update["game"]["cells"][4][0] == 0
    assert update["game"]["activeBoard"] == 0
    assert update["game"]["turn"] == 1

    send(host, type="move", boardIndex=0, cellIndex=1)  # host moved already
    send(guest, type="move", boardIndex=5, cellIndex=1)  # wrong board
    assert host_peer.types() == ["created", "start", "update"]


def test_move_before_opponent_arrives_is_ignored(connect):
    peer, handler = connect()
    send(handler, type="create")
    send(handler, type="move", boardIndex=0, cellIndex=0)
    assert peer.types() == ["created"]
    assert handler.room.game.moves_played == 0


def test_move_without_room_is_ignored(connect):
    peer, handler = connect()
    send(handler, type="move", boardIndex=0, cellIndex=0)
    assert peer.sent == []


def test_rematch_votes(connect):
    _, (host_peer, host), (guest_peer, guest) = start_match(connect)
    send(host, type="move", boardIndex=0, cellIndex=0)

    send(host, type="rematch")
    assert host_peer.types()[-1] == "rematch_waiting"
    assert guest_peer.types()[-1] == "rematch_waiting"

    send(guest, type="rematch")
    start = guest_peer.last("start")
    assert host_peer.last("start") == start
    assert start["game"]["cells"][0][0] is None
    assert start["game"]["turn"] == 0


def test_disconnect_and_reconnect(connect, scheduler):
    code, (host_peer, host), (guest_peer, guest) = start_match(connect)
    send(host, type="move", boardIndex=4, cellIndex=4)
    state = host_peer.last("update")["game"]

    host_peer.live = False
    host.on_close()
    assert host.code is None
    assert guest_peer.types()[-1] == "opponent_left"

    back_peer, back = connect()
    send(back, type="join", code=code)
    assert back.slot == 0
    assert back_peer.types() == ["joined", "start"]
    assert back_peer.last("start")["game"] == state
    assert guest_peer.last("start")["game"] == state
    assert scheduler.timers[0].cancelled


def test_malformed_frames_are_dropped(connect):
    peer, handler = connect()
    for raw in (
        "not json",
        "[]",
        '{"type": "teleport"}',
        '{"code": "ABCDE"}',
        '{"type": "move", "boardIndex": 12, "cellIndex": 0}',
    ):
        handler.handle_text(raw)
    assert peer.sent == []


def test_parse_move_variants():
    flat = parse_client_message('{"type": "move", "index": 3}')
    assert flat.cell == 3
    assert flat.board_index is None

    nested = parse_client_message('{"type": "move", "boardIndex": 2, "cellIndex": 5}')
    assert (nested.board_index, nested.cell) == (2, 5)

    assert parse_client_message('{"type": "move", "boardIndex": 2}') is None


def test_classic_variant(make_registry, make_peer):
    registry = make_registry(variant="classic")
    host_peer, guest_peer = make_peer(), make_peer()
    host = ConnectionHandler(registry, host_peer)
    guest = ConnectionHandler(registry, guest_peer)
    send(host, type="create")
    send(guest, type="join", code=host_peer.last("created")["code"])
    assert guest_peer.last("start")["game"] == {
        "board": [None] * 9,
        "winner": None,
        "turn": 0,
    }

    for handler, index in ((host, 0), (guest, 3), (host, 1), (guest, 4), (host, 2)):
        send(handler, type="move", index=index)
    assert guest_peer.last("update")["game"]["winner"] == 0


def test_joining_own_room_does_not_take_both_seats(connect):
    host_peer, host = connect()
    send(host, type="create")
    code = host_peer.last("created")["code"]

    send(host, type="join", code=code)
    assert host_peer.types() == ["created", "joined"]
    assert host.slot == 0

    guest_peer, guest = connect()
    send(guest, type="join", code=code)
    assert guest_peer.types() == ["joined", "start"]
    assert host_peer.types() == ["created", "joined", "start"]


def test_joining_another_room_leaves_the_old_one(connect, registry):
    old_code, (host_peer, host), (guest_peer, guest) = start_match(connect)
    other_peer, other = connect()
    send(other, type="create")
    new_code = other_peer.last("created")["code"]

    send(guest, type="join", code=new_code)
    assert (guest.code, guest.slot) == (new_code, 1)
    assert host_peer.types()[-1] == "opponent_left"
    assert registry.get(old_code).slots[1] is None


def test_create_replaces_existing_seat(connect, registry):
    old_code, (host_peer, host), (guest_peer, guest) = start_match(connect)

    send(host, type="create")
    new_code = host_peer.last("created")["code"]
    assert new_code != old_code
    assert (host.code, host.slot) == (new_code, 0)
    assert guest_peer.types()[-1] == "opponent_left"
    assert registry.get(old_code).slots[0] is None


def test_numeric_code_sent_as_number(make_registry, make_peer):
    registry = make_registry(code_style="numeric")
    host_peer, guest_peer = make_peer(), make_peer()
    host = ConnectionHandler(registry, host_peer)
    guest = ConnectionHandler(registry, guest_peer)
    send(host, type="create")
    code = host_peer.last("created")["code"]

    send(guest, type="join", code=int(code))
    assert guest_peer.last("joined")["code"] == code
    assert parse_client_message('{"type": "join", "code": true}') is None
