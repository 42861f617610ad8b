"""Auto-correction of frequent speech-recognition mistakes.

Phrase rules run first (longest first) so that multi-word mishearings such as
"pee dee eff" win over any single-word rule; word rules then run token by
token, followed by a last phrase sweep. No rule output contains a rule input,
so running the correction twice changes nothing.
"""

from __future__ import annotations

import re
from typing import Dict, List, Pattern, Tuple

PHRASE_CORRECTIONS: Dict[str, str] = {
    # formats
    "pee dee eff": "pdf",
    "p d f": "pdf",
    "jay peg": "jpeg",
    "jay pee gee": "jpg",
    "j p g": "jpg",
    "p n g": "png",
    "ping file": "png",
    # verbs
    "convert two": "convert to",
    "convert too": "convert to",
    "translate two": "translate to",
    "translate too": "translate to",
    "send two": "send to",
    "send too": "send to",
    "some rise": "summarize",
    "summer ice": "summarize",
    "sum rise": "summarize",
    "air play": "airplay",
    "prince this": "print this",
    # Chinese misrecognitions
    "发个": "发给",
    "法给": "发给",
    "转层": "转成",
    "专成": "转成",
    "转换层": "转换成",
    "翻议成": "翻译成",
    "反译成": "翻译成",
    "总节": "总结",
    "大印": "打印",
    "保从": "保存",
}

WORD_CORRECTIONS: Dict[str, str] = {
    "sent": "send",
    "sand": "send",
    "cent": "send",
    "scent": "send",
    "holed": "hold",
    "summarise": "summarize",
    "summery": "summary",
    "jiff": "gif",
    "jif": "gif",
    "pdfs": "pdf",
    "pdef": "pdf",
    "translates": "translate",
    "prints": "print",
}

_CJK_RE = re.compile(r"[㐀-鿿]")
_WORD_RE = re.compile(r"[a-z][a-z']*")
_SPACE_RE = re.compile(r"\s+")


def _compile_phrases(table: Dict[str, str]) -> List[Tuple[Pattern[str], str]]:
    compiled: List[Tuple[Pattern[str], str]] = []
    for phrase in sorted(table, key=len, reverse=True):
        if _CJK_RE.search(phrase):
            pattern = re.compile(re.escape(phrase))
        else:
            pattern = re.compile(r"(?<![a-z0-9])" + re.escape(phrase) + r"(?![a-z0-9])")
        compiled.append((pattern, table[phrase]))
    return compiled


_PHRASE_RULES = _compile_phrases(PHRASE_CORRECTIONS)


def _correct_word(match: "re.Match[str]") -> str:
    word = match.group(0)
    return WORD_CORRECTIONS.get(word, word)


def autocorrect(text: str | None) -> str:
    """Return the lowercased command with known mishearings fixed."""
    if not text:
        return ""
    corrected = _SPACE_RE.sub(" ", text.lower()).strip()
    for pattern, replacement in _PHRASE_RULES:
        corrected = pattern.sub(replacement, corrected)
    corrected = _WORD_RE.sub(_correct_word, corrected)
    # a corrected word can complete a phrase ("sent two" -> "send two")
    for pattern, replacement in _PHRASE_RULES:
        corrected = pattern.sub(replacement, corrected)
    return _SPACE_RE.sub(" ", corrected).strip()
