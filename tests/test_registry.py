import random

from registry import Participant, RoomRegistry


def test_join_ignores_empty_room_or_name(registry, make_connection):
    conn = make_connection()
    assert registry.join("", "Alice", conn) is None
    assert registry.join("room1", "", conn) is None
    assert registry.join(None, "Alice", conn) is None
    assert registry.rooms == {}
    assert conn.sent == []


def test_first_joiner_gets_empty_snapshot(registry, make_connection):
    alice = make_connection()
    user_id = registry.join("room1", "Alice", alice)

    assert user_id == "Alice_00001"
    assert alice.sent == [{"type": "existing-participants", "participants": [], "myUserId": "Alice_00001"}]
    assert list(registry.rooms["room1"]) == ["Alice_00001"]


def test_second_joiner_sees_first_and_first_is_notified(registry, make_connection):
    alice, bob = make_connection(), make_connection()
    alice_id = registry.join("room1", "Alice", alice)
    bob_id = registry.join("room1", "Bob", bob)

    assert bob.sent == [{
        "type": "existing-participants",
        "participants": [{"userId": alice_id, "name": "Alice"}],
        "myUserId": bob_id,
    }]
    assert alice.of_type("user-joined") == [{"type": "user-joined", "userId": bob_id, "name": "Bob"}]
    # the joiner is never told about itself
    assert bob.of_type("user-joined") == []


def test_each_snapshot_lists_exactly_the_earlier_joiners(registry, make_connection):
    joined = []
    for name in ["A", "B", "C", "D", "E"]:
        conn = make_connection()
        user_id = registry.join("room1", name, conn)
        snapshot = conn.sent[0]
        assert {p["userId"] for p in snapshot["participants"]} == set(joined)
        assert user_id not in {p["userId"] for p in snapshot["participants"]}
        joined.append(user_id)


def test_generated_id_collision_is_regenerated(make_connection):
    ids = iter(["same_1", "same_1", "same_2"])
    registry = RoomRegistry(id_generator=lambda name: next(ids))

    assert registry.join("room1", "same", make_connection()) == "same_1"
    assert registry.join("room2", "same", make_connection()) == "same_2"


def test_forward_reaches_target_in_same_room(registry, make_connection):
    alice, bob = make_connection(), make_connection()
    alice_id = registry.join("room1", "Alice", alice)
    registry.join("room1", "Bob", bob)

    message = {"type": "answer", "senderUserId": "x", "answer": {"sdp": "v=0"}}
    assert registry.forward("room1", alice_id, message) is True
    assert alice.sent[-1] == message


def test_forward_to_missing_target_is_dropped(registry, make_connection):
    alice, bob = make_connection(), make_connection()
    registry.join("room1", "Alice", alice)
    registry.join("room1", "Bob", bob)
    before = (list(alice.sent), list(bob.sent))

    assert registry.forward("room1", "nobody_00000", {"type": "offer"}) is False
    assert registry.forward("missing-room", "Alice_00001", {"type": "offer"}) is False
    assert (alice.sent, bob.sent) == before


def test_forward_to_unwritable_target_is_dropped(registry, make_connection):
    alice, bob = make_connection(), make_connection()
    alice_id = registry.join("room1", "Alice", alice)
    registry.join("room1", "Bob", bob)
    alice.open = False

    assert registry.forward("room1", alice_id, {"type": "candidate"}) is False
    # stale entry stays until its connection leaves
    assert alice_id in registry.rooms["room1"]


def test_forward_never_crosses_rooms_even_with_colliding_ids(registry, make_connection):
    in_r1, in_r2 = make_connection(), make_connection()
    registry.rooms["r1"] = {"dup": Participant(user_id="dup", name="One", connection=in_r1)}
    registry.rooms["r2"] = {"dup": Participant(user_id="dup", name="Two", connection=in_r2)}

    assert registry.forward("r1", "dup", {"type": "offer", "offer": 1}) is True
    assert in_r1.sent == [{"type": "offer", "offer": 1}]
    assert in_r2.sent == []


def test_leave_notifies_remaining_and_keeps_room(registry, make_connection):
    alice, bob = make_connection(), make_connection()
    alice_id = registry.join("room1", "Alice", alice)
    bob_id = registry.join("room1", "Bob", bob)

    assert registry.leave("room1", bob_id) is True
    assert alice.sent[-1] == {"type": "user-left", "userId": bob_id}
    assert list(registry.rooms["room1"]) == [alice_id]


def test_last_leave_removes_room(registry, make_connection):
    alice = make_connection()
    alice_id = registry.join("room1", "Alice", alice)

    assert registry.leave("room1", alice_id) is True
    assert "room1" not in registry.rooms
    assert registry.get_room("room1") is None


def test_leave_unknown_is_noop(registry, make_connection):
    registry.join("room1", "Alice", make_connection())
    assert registry.leave("room1", "ghost") is False
    assert registry.leave("nowhere", "Alice_00001") is False
    assert registry.leave(None, None) is False
    assert registry.list_rooms() == {"room1": 1}


def test_broadcast_skips_excluded_and_unwritable(registry, make_connection):
    a, b, c = make_connection(), make_connection(), make_connection()
    a_id = registry.join("room1", "A", a)
    registry.join("room1", "B", b)
    registry.join("room1", "C", c)
    c.open = False

    delivered = registry.broadcast_to_room("room1", a_id, {"type": "ping"})

    assert delivered == 1
    assert b.sent[-1] == {"type": "ping"}
    assert {"type": "ping"} not in a.sent
    assert registry.broadcast_to_room("missing", None, {"type": "ping"}) == 0


def test_introspection_snapshots(registry, make_connection):
    registry.join("room1", "Alice", make_connection())
    registry.join("room1", "Bob", make_connection())
    registry.join("room2", "Carol", make_connection())

    assert registry.list_rooms() == {"room1": 2, "room2": 1}
    assert [p.name for p in registry.get_room("room1")] == ["Alice", "Bob"]
    assert registry.get_participant("room2", "Carol_00003").name == "Carol"
    assert registry.get_participant("room2", "Alice_00001") is None


def test_rooms_are_never_left_empty(registry, make_connection):
    rng = random.Random(7)
    members = []
    for step in range(300):
        if members and rng.random() < 0.45:
            room_id, user_id = members.pop(rng.randrange(len(members)))
            registry.leave(room_id, user_id)
        else:
            room_id = f"room{rng.randrange(4)}"
            user_id = registry.join(room_id, f"u{step}", make_connection())
            members.append((room_id, user_id))

        for room in registry.rooms.values():
            assert len(room) >= 1
        expected_rooms = {room_id for room_id, _ in members}
        assert set(registry.rooms) == expected_rooms
