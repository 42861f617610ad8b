import json

import pytest

from pocket.core.errors import InvalidTransitionError
from pocket.core.models import (
    AirPlay,
    ContentType,
    Convert,
    Custom,
    Extract,
    Hold,
    Intent,
    ItemResult,
    PocketItem,
    PocketTask,
    Print,
    PrintedResult,
    Send,
    Summarize,
    TaskStatus,
    TextResult,
    Translate,
)


def test_content_type_from_extension():
    assert ContentType.from_extension(".PNG") is ContentType.IMAGE
    assert ContentType.from_extension("pdf") is ContentType.DOCUMENT
    assert ContentType.from_extension(".wav") is ContentType.AUDIO
    assert ContentType.from_extension(".unknown") is ContentType.DOCUMENT


def test_item_is_immutable_and_hashable_by_id():
    item = PocketItem.from_text("hello", name="note")
    with pytest.raises(Exception):
        item.name = "other"  # type: ignore[misc]
    with pytest.raises(TypeError):
        item.metadata["k"] = "v"  # type: ignore[index]
    assert len({item, item}) == 1
    assert item.text() == "hello"


def test_item_from_path_and_derive(tmp_path):
    path = tmp_path / "report.pdf"
    path.write_bytes(b"%PDF-1.4")
    item = PocketItem.from_path(path)
    assert item.type is ContentType.DOCUMENT
    assert item.name == "report.pdf"
    derived = item.derive(type=ContentType.TEXT, data=b"summary", name="Summary")
    assert derived.metadata["derived_from"] == str(item.id)
    assert derived.id != item.id


def test_url_item_name():
    item = PocketItem.from_url("https://example.com/docs/page")
    assert item.type is ContentType.LINK
    assert item.name == "page"


@pytest.mark.parametrize(
    "action, description",
    [
        (Hold(), "Holding item..."),
        (Send(target="John"), "Sending to John..."),
        (Convert(format="pdf"), "Converting to PDF..."),
        (Extract(operation=Summarize()), "Summarizing..."),
        (Extract(operation=Translate("French")), "Translating to French..."),
        (Extract(operation=Custom("rhyme it")), "Processing..."),
        (Print(copies=1), "Printing 1 copy..."),
        (Print(copies=3), "Printing 3 copies..."),
        (AirPlay(device="TV"), "Playing on TV..."),
    ],
)
def test_intent_description(action, description):
    assert Intent(action=action).description == description


def test_intent_confidence_bounds():
    with pytest.raises(ValueError):
        Intent(action=Hold(), confidence=1.5)
    with pytest.raises(ValueError):
        Intent(action=Hold(), confidence=-0.1)
    assert Intent.hold().confidence == 1.0


def test_intent_payload():
    intent = Intent(action=Print(copies=2), raw_command="print 2", confidence=0.9)
    data = json.loads(intent.to_json())
    assert data["action"] == "print"
    assert data["copies"] == 2
    assert data["options"]["paper_size"] == "A4"
    assert data["confidence"] == 0.9


def test_task_moves_forward_only():
    task = PocketTask(item=PocketItem.from_text("x"), intent=Intent.hold())
    assert task.status is TaskStatus.PENDING and task.is_active
    task.start()
    task.update_progress(0.4)
    with pytest.raises(InvalidTransitionError):
        task.update_progress(0.2)
    task.complete(TextResult("done"))
    assert task.status is TaskStatus.COMPLETED
    assert task.progress == 1.0
    assert not task.is_active
    with pytest.raises(InvalidTransitionError):
        task.start()
    with pytest.raises(InvalidTransitionError):
        task.fail("late")


def test_task_failure_and_cancel():
    failed = PocketTask(item=PocketItem.from_text("x"), intent=Intent.hold())
    failed.start()
    failed.fail("printer offline")
    assert failed.status is TaskStatus.FAILED
    assert failed.failure_reason == "printer offline"
    assert failed.finished_at is not None

    cancelled = PocketTask(item=PocketItem.from_text("x"), intent=Intent.hold())
    cancelled.cancel()
    assert cancelled.status is TaskStatus.CANCELLED
    with pytest.raises(InvalidTransitionError):
        cancelled.update_progress(0.5)


def test_result_messages():
    item = PocketItem.from_text("x", name="out.pdf")
    assert ItemResult(item).display_message == "Created: out.pdf"
    assert TextResult("a" * 60).display_message == "a" * 50 + "..."
    assert PrintedResult(1).display_message == "Printed 1 copy"
    assert PrintedResult(2).display_message == "Printed 2 copies"
