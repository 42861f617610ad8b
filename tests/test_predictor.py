import pytest

from pocket.core.models import AirPlay, ContentType, Extract, Hold, Transcribe
from pocket.core.predictor import MAX_PREDICTIONS, predict


@pytest.mark.parametrize("content_type", list(ContentType))
def test_hold_first_and_at_most_four(content_type):
    predictions = predict(content_type)
    assert predictions[0].action == Hold()
    assert 1 < len(predictions) <= MAX_PREDICTIONS
    assert all(0.0 <= p.confidence <= 1.0 for p in predictions)


def test_audio_predictions_are_stable():
    labels = [p.label for p in predict("audio")]
    assert labels == ["Hold", "Transcribe", "Send", "AirPlay"]
    assert predict(ContentType.AUDIO)[1].action == Extract(operation=Transcribe())
    assert predict(ContentType.AUDIO) == predict(ContentType.AUDIO)


def test_video_prefers_airplay():
    top = predict(ContentType.VIDEO)[1]
    assert top.action == AirPlay(device="TV")
    assert top.confidence == 0.9
