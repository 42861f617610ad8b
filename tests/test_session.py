import json

from pocket.core.models import ContentType, PocketItem
from pocket.core.session import PocketSession, describe_items


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _items(n: int) -> list[PocketItem]:
    return [PocketItem.from_text(f"item {i}", name=f"n{i}.txt") for i in range(n)]


def test_session_states_and_capacity():
    session = PocketSession(max_items=3)
    assert session.state == "empty" and not session.is_active
    a, b, c, d = _items(4)
    assert session.add(a)
    assert session.state == "single" and not session.is_batch
    assert session.add_many([b, c, d]) == 2
    assert session.state == "full"
    assert session.is_batch and not session.can_add_more
    assert len(session) == 3


def test_remove_and_auto_end():
    session = PocketSession()
    a, b = _items(2)
    session.add_many([a, b])
    assert session.remove(a.id)
    assert not session.remove(a.id)
    assert session.remove_at(0) is b
    assert session.remove_at(0) is None
    assert session.state == "empty"
    assert session.started_at is None


def test_timeout_uses_clock():
    clock = FakeClock()
    session = PocketSession(timeout=10, clock=clock)
    session.add(_items(1)[0])
    clock.now += 5
    assert not session.check_timeout()
    clock.now += 11
    assert session.check_timeout()
    assert len(session) == 0


def test_type_summary_and_context():
    session = PocketSession()
    session.add(PocketItem(type=ContentType.IMAGE, data=b"\x89PNG", name="cat.png"))
    session.add(PocketItem.from_text("hi", name="note.txt"))
    session.add(PocketItem(type=ContentType.IMAGE, data=b"\x89PNG", name="dog.png"))
    assert session.items_of_type(ContentType.IMAGE)[1].name == "dog.png"
    assert session.type_summary() == "2 image, 1 text"
    assert session.context() == describe_items(session.items)
    assert session.context().startswith("Session contains 3 items:\n1. cat.png (image)")


def test_create_package_manifest():
    session = PocketSession()
    assert session.create_package() is None
    session.add_many(_items(2))
    package = session.create_package("Trip")
    assert package.name == "Trip_2_items.json"
    assert package.type is ContentType.DOCUMENT
    manifest = json.loads(package.data)
    assert [entry["name"] for entry in manifest] == ["n0.txt", "n1.txt"]
