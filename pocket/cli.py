from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from pocket.core.classifier import IntentClassifier
from pocket.core.config import get_settings
from pocket.core.corrections import autocorrect
from pocket.core.groq import GroqClient
from pocket.core.models import ContentType, action_payload
from pocket.core.predictor import predict as predict_actions
from pocket.core.voice import VoiceTranscriber


cli = typer.Typer(name="pocket", help="Pocket voice command tools")
config_cli = typer.Typer(help="Configuration")

cli.add_typer(config_cli, name="config")


def _content_type(value: str) -> ContentType:
    try:
        return ContentType(value.lower())
    except ValueError:
        choices = ", ".join(t.value for t in ContentType)
        typer.echo(f"Unknown content type: {value} (expected one of {choices})")
        raise typer.Exit(code=2)


async def _classify(text: str, kind: ContentType, offline: bool) -> dict:
    settings = get_settings()
    if offline:
        classifier = IntentClassifier(None, settings=settings)
        intent = await classifier.classify(text, kind)
        return {"intent": intent.to_payload(), "error": classifier.last_error}
    async with GroqClient(settings) as groq:
        classifier = IntentClassifier(groq, settings=settings)
        intent = await classifier.classify(text, kind)
        return {"intent": intent.to_payload(), "error": classifier.last_error}


@cli.command()
def classify(
    text: str,
    type: str = typer.Option("document", "--type", help="Content type of the dropped item"),
    offline: bool = typer.Option(False, "--offline", help="Phrase matching only, no Groq call"),
):
    """Classify a spoken command against an item type."""
    kind = _content_type(type)
    result = asyncio.run(_classify(text, kind, offline))
    typer.echo(json.dumps(result, ensure_ascii=False))


@cli.command()
def predict(type: str):
    """List the suggested actions for a content type."""
    kind = _content_type(type)
    items = [
        {**action_payload(p.action), "icon": p.icon, "label": p.label, "confidence": p.confidence, "color": p.color}
        for p in predict_actions(kind)
    ]
    typer.echo(json.dumps({"predictions": items}, ensure_ascii=False))


@cli.command()
def correct(text: str):
    """Show the auto-corrected form of a transcript."""
    typer.echo(autocorrect(text))


async def _transcribe(data: bytes, language: Optional[str]) -> Optional[str]:
    async with GroqClient() as groq:
        return await VoiceTranscriber(groq).transcribe(data, language)


@cli.command()
def transcribe(path: str, language: Optional[str] = typer.Option(None, "--language", help="ISO code, e.g. en or zh")):
    """Transcribe a WAV recording through Groq."""
    audio = Path(path)
    if not audio.exists():
        typer.echo(f"File not found: {audio}")
        raise typer.Exit(code=1)
    text = asyncio.run(_transcribe(audio.read_bytes(), language))
    if text is None:
        typer.echo("No transcript")
        raise typer.Exit(code=1)
    typer.echo(text)


@config_cli.command("print")
def config_print():
    s = get_settings()
    typer.echo(json.dumps(s.masked_dump(), ensure_ascii=False, default=str))


if __name__ == "__main__":
    cli()
