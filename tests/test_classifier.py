import asyncio

import pytest

from pocket.core.classifier import (
    BATCH_INSTRUCTIONS,
    IntentClassifier,
    decode_llm_payload,
    map_action,
)
from pocket.core.config import Settings
from pocket.core.errors import InvalidJSONError, UnknownActionError
from pocket.core.models import (
    AirPlay,
    ContentType,
    Convert,
    Extract,
    ExtractText,
    Hold,
    PocketItem,
    Print,
    Send,
    Summarize,
)
from pocket.core.session import PocketSession


class StubLLM:
    def __init__(self, reply: str = '{"action":"summarize","confidence":0.85}', exc: Exception | None = None):
        self.reply = reply
        self.exc = exc
        self.calls: list[dict] = []

    async def complete(self, user_prompt: str, *, system_prompt: str | None = None) -> str:
        self.calls.append({"prompt": user_prompt, "system": system_prompt})
        if self.exc is not None:
            raise self.exc
        return self.reply


class SlowLLM(StubLLM):
    async def complete(self, user_prompt: str, *, system_prompt: str | None = None) -> str:
        self.calls.append({"prompt": user_prompt, "system": system_prompt})
        await asyncio.sleep(1)
        return self.reply


@pytest.mark.asyncio
async def test_empty_command_is_hold_without_llm():
    llm = StubLLM()
    classifier = IntentClassifier(llm, settings=Settings())
    for raw in (None, "", "   "):
        intent = await classifier.classify(raw, ContentType.DOCUMENT)
        assert intent.action == Hold()
        assert intent.confidence == 1.0
    assert llm.calls == []


@pytest.mark.asyncio
async def test_pattern_match_short_circuits_llm():
    llm = StubLLM()
    classifier = IntentClassifier(llm, settings=Settings())
    intent = await classifier.classify("send this to John", ContentType.DOCUMENT)
    assert intent.action == Send(target="John")
    assert intent.confidence == 0.9
    assert intent.raw_command == "send this to John"
    intent = await classifier.classify("Convert to PDF", ContentType.IMAGE)
    assert intent.action == Convert(format="pdf")
    assert llm.calls == []


@pytest.mark.asyncio
async def test_pattern_match_runs_after_autocorrect():
    classifier = IntentClassifier(StubLLM(), settings=Settings())
    intent = await classifier.classify("convert two pee dee eff", ContentType.IMAGE)
    assert intent.action == Convert(format="pdf")


@pytest.mark.asyncio
async def test_llm_answer_is_used_when_no_pattern():
    llm = StubLLM()
    classifier = IntentClassifier(llm, settings=Settings())
    intent = await classifier.classify("please make this nicer", ContentType.DOCUMENT)
    assert intent.action == Extract(operation=Summarize())
    assert intent.confidence == 0.85
    assert classifier.last_error is None
    assert len(llm.calls) == 1
    assert 'Command: "please make this nicer"' in llm.calls[0]["prompt"]
    assert "File type: document" in llm.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_invalid_json_falls_back_to_hold():
    classifier = IntentClassifier(StubLLM(reply="not json at all"), settings=Settings())
    intent = await classifier.classify("xyz123", ContentType.DOCUMENT)
    assert intent.action == Hold()
    assert intent.confidence == 0.5
    assert classifier.last_error is not None
    assert classifier.last_error["error"]["code"] == "InvalidJSONError"
    assert classifier.last_error["error"]["details"]["command"] == "xyz123"
    assert classifier.is_processing is False


@pytest.mark.asyncio
async def test_fallback_is_not_cached():
    llm = StubLLM(reply="{oops")
    classifier = IntentClassifier(llm, settings=Settings())
    await classifier.classify("xyz123", ContentType.DOCUMENT)
    await classifier.classify("xyz123", ContentType.DOCUMENT)
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_network_error_and_missing_backend_fall_back():
    failing = IntentClassifier(StubLLM(exc=ConnectionError("offline")), settings=Settings())
    intent = await failing.classify("do something odd", ContentType.TEXT)
    assert intent.action == Hold() and intent.confidence == 0.5
    assert failing.last_error["error"]["message"] == "offline"

    offline = IntentClassifier(None, settings=Settings())
    intent = await offline.classify("do something odd", ContentType.TEXT)
    assert intent.action == Hold() and intent.confidence == 0.5
    assert offline.last_error is not None


@pytest.mark.asyncio
async def test_unknown_action_falls_back():
    classifier = IntentClassifier(StubLLM(reply='{"action":"dance"}'), settings=Settings())
    intent = await classifier.classify("do a little dance", ContentType.VIDEO)
    assert intent.action == Hold()
    assert classifier.last_error["error"]["code"] == "UnknownActionError"


@pytest.mark.asyncio
async def test_timeout_falls_back():
    classifier = IntentClassifier(SlowLLM(), settings=Settings())
    intent = await classifier.classify("do something slow", ContentType.TEXT, timeout=0.01)
    assert intent.action == Hold()
    assert classifier.last_error["error"]["code"] == "timeout"


@pytest.mark.asyncio
async def test_cache_round_trip_calls_llm_once():
    llm = StubLLM()
    classifier = IntentClassifier(llm, settings=Settings())
    first = await classifier.classify("please make this nicer", ContentType.DOCUMENT)
    second = await classifier.classify("Please  make this nicer!", ContentType.DOCUMENT)
    assert len(llm.calls) == 1
    assert first == second
    assert first.resolves_like(second)
    # another item type is a different key
    await classifier.classify("please make this nicer", ContentType.IMAGE)
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_default_confidence_and_code_fences():
    llm = StubLLM(reply='```json\n{"action": "cast", "target": "Living Room"}\n```')
    classifier = IntentClassifier(llm, settings=Settings())
    intent = await classifier.classify("show it on the big screen", ContentType.VIDEO)
    assert intent.action == AirPlay(device="Living Room")
    assert intent.confidence == 0.8


@pytest.mark.asyncio
async def test_apply_to_all_only_in_batch_mode():
    reply = '{"action":"send","target":"Mike","confidence":0.9,"apply_to_all":true}'
    single = IntentClassifier(StubLLM(reply=reply), settings=Settings())
    intent = await single.classify("give everything to mike", ContentType.IMAGE)
    assert intent.apply_to_all is False

    llm = StubLLM(reply=reply)
    batch = IntentClassifier(llm, settings=Settings())
    session = PocketSession()
    session.add(PocketItem.from_text("one", name="a.txt"))
    session.add(PocketItem.from_text("two", name="b.txt"))
    intent = await batch.classify("give everything to mike", ContentType.IMAGE, session=session)
    assert intent.apply_to_all is True
    assert intent.action == Send(target="Mike")
    assert BATCH_INSTRUCTIONS.strip() in llm.calls[0]["system"]
    assert "Session contains 2 items" in llm.calls[0]["prompt"]


def test_decode_rejects_bad_shapes():
    with pytest.raises(InvalidJSONError):
        decode_llm_payload("")
    with pytest.raises(InvalidJSONError):
        decode_llm_payload("[1, 2]")
    with pytest.raises(InvalidJSONError):
        decode_llm_payload('{"target": "John"}')
    with pytest.raises(InvalidJSONError):
        decode_llm_payload('{"action": "send", "confidence": 1.7}')
    with pytest.raises(InvalidJSONError):
        decode_llm_payload('{"action": "summarize", "confidence": "0.85"}')
    with pytest.raises(InvalidJSONError):
        decode_llm_payload('{"action": "summarize", "apply_to_all": "yes"}')
    with pytest.raises(InvalidJSONError):
        decode_llm_payload('{"action": "print", "target": true}')


def test_decode_accepts_integer_confidence():
    payload = decode_llm_payload('{"action": "hold", "confidence": 1, "apply_to_all": false}')
    assert payload.confidence == 1.0
    assert payload.apply_to_all is False


@pytest.mark.asyncio
async def test_string_typed_fields_fall_back_to_hold():
    llm = StubLLM(reply='{"action":"summarize","confidence":"0.85","apply_to_all":"yes"}')
    classifier = IntentClassifier(llm, settings=Settings())
    intent = await classifier.classify("please make this nicer", ContentType.DOCUMENT)
    assert intent.action == Hold()
    assert intent.confidence == 0.5
    assert classifier.last_error["error"]["code"] == "InvalidJSONError"


@pytest.mark.parametrize(
    "action, target, expected",
    [
        ("store", None, Hold()),
        ("KEEP", None, Hold()),
        ("share", "Ann", Send(target="Ann")),
        ("change", "PNG", Convert(format="png")),
        ("ocr", None, Extract(operation=ExtractText())),
        ("extract", None, Extract(operation=ExtractText())),
        ("mirror", None, AirPlay(device="TV")),
        ("print", 2, Print(copies=2)),
        ("send", None, Send(target="Unknown")),
    ],
)
def test_map_action_synonyms(action, target, expected):
    payload = decode_llm_payload(
        '{"action": "%s"%s}' % (action, "" if target is None else ', "target": %s' % (
            target if isinstance(target, int) else '"%s"' % target
        ))
    )
    assert map_action(payload) == expected


def test_map_action_unknown():
    with pytest.raises(UnknownActionError):
        map_action(decode_llm_payload('{"action": "juggle"}'))
