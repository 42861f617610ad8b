from __future__ import annotations

import re
from typing import Callable, List, Optional, Tuple

from .models import Action, Convert, Extract, Hold, Print, Send, Summarize, Translate

HOLD_PATTERNS = ["hold", "keep", "save", "store", "put here", "先放着", "保存", "存一下"]
SEND_PATTERNS = ["send to", "send this to", "share with", "share to", "发给", "发送给", "分享给"]
CONVERT_PATTERNS = ["convert to", "change to", "make it", "turn into", "转成", "转换成", "改成"]
SUMMARIZE_PATTERNS = ["summarize", "summary", "sum up", "key points", "总结", "摘要", "概括"]
TRANSLATE_PATTERNS = ["translate to", "translate into", "in english", "in chinese", "翻译成", "翻成"]
PRINT_PATTERNS = ["print", "print this", "print out", "打印", "列印"]

_TRAILING_PUNCT = ".,!?;:\"'。，！？；："
_DIGITS_RE = re.compile(r"\d+")


def _word_after(text: str, pattern: str) -> Optional[str]:
    index = text.find(pattern)
    if index < 0:
        return None
    remaining = text[index + len(pattern):].strip()
    if not remaining:
        return None
    word = remaining.split()[0].strip(_TRAILING_PUNCT)
    return word or None


def extract_target(text: str, pattern: str) -> Optional[str]:
    word = _word_after(text, pattern)
    return word.capitalize() if word else None


def extract_format(text: str, pattern: str) -> Optional[str]:
    word = _word_after(text, pattern)
    return word.lower() if word else None


def extract_language(text: str, pattern: str) -> Optional[str]:
    if pattern == "in english":
        return "English"
    if pattern == "in chinese":
        return "Chinese"
    word = _word_after(text, pattern)
    return word.capitalize() if word else None


def extract_copies(text: str) -> Optional[int]:
    match = _DIGITS_RE.search(text)
    if not match:
        return None
    return max(1, int(match.group(0)))


def _hold(text: str, pattern: str) -> Action:
    return Hold()


def _send(text: str, pattern: str) -> Action:
    return Send(target=extract_target(text, pattern) or "unknown")


def _convert(text: str, pattern: str) -> Action:
    return Convert(format=extract_format(text, pattern) or "pdf")


def _summarize(text: str, pattern: str) -> Action:
    return Extract(operation=Summarize())


def _translate(text: str, pattern: str) -> Action:
    return Extract(operation=Translate(target_language=extract_language(text, pattern) or "English"))


def _print(text: str, pattern: str) -> Action:
    return Print(copies=extract_copies(text) or 1)


# Order matters: the first family with a matching phrase wins.
PATTERN_FAMILIES: List[Tuple[str, List[str], Callable[[str, str], Action]]] = [
    ("hold", HOLD_PATTERNS, _hold),
    ("send", SEND_PATTERNS, _send),
    ("convert", CONVERT_PATTERNS, _convert),
    ("summarize", SUMMARIZE_PATTERNS, _summarize),
    ("translate", TRANSLATE_PATTERNS, _translate),
    ("print", PRINT_PATTERNS, _print),
]


def match_family(text: str) -> Optional[Tuple[str, str]]:
    """Return (family, phrase) of the first matching phrase, if any."""
    lowered = (text or "").lower()
    for family, phrases, _builder in PATTERN_FAMILIES:
        for phrase in phrases:
            if phrase in lowered:
                return family, phrase
    return None


def quick_match(text: str) -> Optional[Action]:
    """Resolve a command without the LLM when a known phrase is present."""
    lowered = (text or "").lower()
    for _family, phrases, builder in PATTERN_FAMILIES:
        for phrase in phrases:
            if phrase in lowered:
                return builder(lowered, phrase)
    return None
