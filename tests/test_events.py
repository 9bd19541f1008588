import asyncio

import pytest

from impostor import events
from impostor.events import handle_disconnect, handle_event


def call(registry, conn, event, data=None):
    return asyncio.run(handle_event(registry, conn, event, data))


@pytest.fixture
def lobby(registry, make_conn):
    """Alice creates a room, Bob and Carol join it."""
    conns = {name: make_conn(name) for name in ("Alice", "Bob", "Carol")}
    created = call(registry, conns["Alice"], "createRoom", {"name": "Alice", "category": "General"})
    code = created["code"]
    sessions = {"Alice": created["sessionId"]}
    for name in ("Bob", "Carol"):
        sessions[name] = call(registry, conns[name], "joinRoom", {"name": name, "code": code})["sessionId"]
    return code, sessions, conns


def test_create_room_ack_and_confirmation(registry, make_conn):
    conn = make_conn()
    ack = call(registry, conn, "createRoom", {"name": "Alice"})
    assert ack["ok"] is True
    assert ack["reconnected"] is False
    assert conn.last("roomCreated") == {"code": ack["code"], "sessionId": ack["sessionId"]}
    state = conn.last("roomUpdate")
    assert state["category"] == "General"
    assert state["players"][0]["host"] is True


def test_create_room_invalid_category(registry, make_conn):
    ack = call(registry, make_conn(), "createRoom", {"name": "Alice", "category": "Nope"})
    assert ack["ok"] is False
    assert ack["code"] == "InvalidCategory"
    assert registry.rooms == {}


def test_join_broadcasts_to_everyone(lobby, registry):
    code, sessions, conns = lobby
    names = [p["name"] for p in conns["Alice"].last("roomUpdate")["players"]]
    assert names == ["Alice", "Bob", "Carol"]
    assert len(registry.get(code).players) == 3


def test_join_unknown_room(registry, make_conn):
    ack = call(registry, make_conn(), "joinRoom", {"name": "Bob", "code": "NOPE"})
    assert ack == {"ok": False, "error": "Room not found", "code": "RoomNotFound"}


def test_reconnect_after_disconnect(registry, make_conn):
    conn = make_conn("alice-1")
    created = call(registry, conn, "createRoom", {"name": "Alice"})
    code, session_id = created["code"], created["sessionId"]
    call(registry, make_conn("bob"), "joinRoom", {"name": "Bob", "code": code})

    asyncio.run(handle_disconnect(registry, conn))
    room = registry.get(code)
    assert not room.is_online(session_id)
    assert len(room.players) == 2

    conn2 = make_conn("alice-2")
    ack = call(registry, conn2, "joinRoom", {"name": "Alice", "code": code.lower(), "sessionId": session_id})
    assert ack["ok"] is True
    assert ack["reconnected"] is True
    assert ack["sessionId"] == session_id
    assert ack["code"] == code
    assert len(room.players) == 2
    assert conn2.last("reconnected") == {"code": code, "sessionId": session_id}
    assert room.host_id == session_id


def test_reconnect_resends_current_role(lobby, registry, make_conn):
    code, sessions, conns = lobby
    call(registry, conns["Alice"], "startRound", {"code": code})
    asyncio.run(handle_disconnect(registry, conns["Bob"]))

    bob2 = make_conn("Bob-2")
    call(registry, bob2, "joinRoom", {"name": "Bob", "code": code, "sessionId": sessions["Bob"]})
    assert bob2.last("roundData") == conns["Bob"].last("roundData")


def test_second_client_displaces_the_first(lobby, registry, make_conn):
    code, sessions, conns = lobby
    other = make_conn("Bob-tab")
    ack = call(registry, other, "joinRoom", {"name": "Bob", "code": code, "sessionId": sessions["Bob"]})
    assert ack["reconnected"] is True
    assert conns["Bob"].events("kicked")
    assert registry.find_room_for_connection(conns["Bob"]) is None


def test_start_round_by_host(lobby, registry):
    code, sessions, conns = lobby
    ack = call(registry, conns["Alice"], "startRound", {"code": code})
    assert ack == {"ok": True}
    roles = [conn.last("roundData") for conn in conns.values()]
    assert sum(1 for r in roles if r["role"] == "impostor") == 1
    assert len({r["word"] for r in roles if r["role"] == "player"}) == 1
    assert conns["Bob"].last("roomUpdate")["state"] == "round_active"


def test_start_round_by_non_host_is_rejected(lobby, registry):
    code, sessions, conns = lobby
    ack = call(registry, conns["Bob"], "startRound", {"code": code})
    assert ack["ok"] is False
    assert ack["code"] == "NotHost"
    assert registry.get(code).round_number == 0
    assert all(conn.events("roundData") == [] for conn in conns.values())


def test_start_round_from_outsider_is_rejected(lobby, registry, make_conn):
    code, _, _ = lobby
    ack = call(registry, make_conn("outsider"), "startRound", {"code": code})
    assert ack["code"] == "NotHost"


def test_set_category(lobby, registry):
    code, sessions, conns = lobby
    assert call(registry, conns["Bob"], "setCategory", {"code": code, "category": "Animals"})["code"] == "NotHost"
    assert call(registry, conns["Alice"], "setCategory", {"code": code, "category": "Nope"})["code"] == "InvalidCategory"
    assert call(registry, conns["Alice"], "setCategory", {"code": code, "category": "Animals"}) == {"ok": True}
    assert conns["Carol"].last("categoryChanged") == "Animals"
    assert registry.get(code).category == "Animals"


def test_leave_room(lobby, registry):
    code, sessions, conns = lobby
    assert call(registry, conns["Alice"], "leaveRoom", {"code": code, "sessionId": sessions["Alice"]}) == {"ok": True}
    state = conns["Bob"].last("roomUpdate")
    assert [p["name"] for p in state["players"]] == ["Bob", "Carol"]
    assert state["players"][0]["host"] is True

    ack = call(registry, conns["Alice"], "leaveRoom", {"code": code, "sessionId": sessions["Alice"]})
    assert ack["code"] == "SessionNotFound"


def test_everyone_leaving_deletes_the_room(lobby, registry):
    code, sessions, conns = lobby
    for name in ("Alice", "Bob", "Carol"):
        call(registry, conns[name], "leaveRoom", {"code": code, "sessionId": sessions[name]})
    assert code not in registry.rooms
    assert call(registry, conns["Alice"], "startRound", {"code": code})["code"] == "RoomNotFound"


def test_set_ready(lobby, registry):
    code, sessions, conns = lobby
    ack = call(registry, conns["Bob"], "setReady", {"ready": True})
    assert ack == {"ok": True}
    players = conns["Alice"].last("roomUpdate")["players"]
    assert [p["ready"] for p in players] == [False, True, False]


def test_set_ready_outside_a_room(registry, make_conn):
    ack = call(registry, make_conn(), "setReady", {"ready": True})
    assert ack["code"] == "SessionNotFound"


def test_list_categories(registry, make_conn):
    assert call(registry, make_conn(), "listCategories") == ["General", "Animals", "Tiny", "Empty"]


def test_creating_a_new_room_leaves_the_old_one(lobby, registry):
    code, sessions, conns = lobby
    ack = call(registry, conns["Bob"], "createRoom", {"name": "Bob"})
    old_room = registry.get(code)
    assert not old_room.is_online(sessions["Bob"])
    assert registry.find_room_for_connection(conns["Bob"]).code == ack["code"]
    assert len(old_room.players) == 3
    assert sessions["Bob"] in old_room.expiry_tasks
    assert [p["connected"] for p in conns["Alice"].last("roomUpdate")["players"]] == [True, False, True]


def test_unknown_event_and_bad_payloads(registry, make_conn):
    conn = make_conn()
    assert call(registry, conn, "explode")["code"] == "BadRequest"
    assert call(registry, conn, None)["code"] == "BadRequest"
    assert call(registry, conn, "joinRoom", {"name": "Bob"})["code"] == "BadRequest"
    assert call(registry, conn, "startRound", ["not", "a", "dict"])["code"] == "BadRequest"


def test_unexpected_errors_become_generic_failures(registry, make_conn, monkeypatch):
    async def boom(registry, connection, data):
        raise RuntimeError("kaboom")

    monkeypatch.setitem(events.HANDLERS, "listCategories", boom)
    ack = call(registry, make_conn(), "listCategories")
    assert ack == {"ok": False, "error": "Internal error", "code": "InternalError"}


def test_non_string_event_names_are_rejected(lobby, registry):
    code, sessions, conns = lobby
    assert call(registry, conns["Alice"], ["startRound"], {"code": code})["code"] == "BadRequest"
    assert call(registry, conns["Alice"], {"name": "startRound"}, {"code": code})["code"] == "BadRequest"
    assert call(registry, conns["Alice"], 7)["code"] == "BadRequest"
    room = registry.get(code)
    assert room.round_number == 0
    assert room.is_online(sessions["Alice"])


def test_leaving_another_room_waits_for_its_lock(lobby, registry):
    code, sessions, conns = lobby
    old_room = registry.get(code)

    async def scenario():
        async with old_room.lock:
            task = asyncio.ensure_future(handle_event(registry, conns["Bob"], "createRoom", {"name": "Bob"}))
            for _ in range(5):
                await asyncio.sleep(0)
            # The old room is untouched while another operation holds its lock.
            assert old_room.is_online(sessions["Bob"])
        return await task

    ack = asyncio.run(scenario())
    assert ack["ok"] is True
    assert not old_room.is_online(sessions["Bob"])
    assert registry.find_room_for_connection(conns["Bob"]).code == ack["code"]
