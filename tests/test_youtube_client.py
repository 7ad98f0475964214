"""Tests for the YouTube transcript source."""

from types import SimpleNamespace

import pytest
from youtube_transcript_api import TranscriptsDisabled

from tubedigest.exceptions import DocumentUnavailable, EmptyTranscript, InvalidVideoReference, TranscriptNotFound
from tubedigest.youtube_client import YoutubeClient, extract_video_id, format_duration


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ?si=abcdef",
        "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "dQw4w9WgXcQ",
    ],
)
def test_extract_video_id(url):
    assert extract_video_id(url) == "dQw4w9WgXcQ"


@pytest.mark.parametrize("url", ["https://example.com/video", "", "not a video"])
def test_extract_video_id_rejects_other_urls(url):
    with pytest.raises(InvalidVideoReference):
        extract_video_id(url)


def test_format_duration():
    assert format_duration(3725) == "01:02:05"
    assert format_duration(-5) == "00:00:00"


class FakeTranscriptApi:
    def __init__(self, snippets=None, error=None):
        self.snippets = snippets or []
        self.error = error
        self.calls = []

    def fetch(self, video_id, languages=None):
        self.calls.append((video_id, languages))
        if self.error:
            raise self.error
        return self.snippets


def client_with(api):
    client = YoutubeClient()
    client.client = api
    return client


def test_fetch_transcript_joins_snippets():
    api = FakeTranscriptApi([SimpleNamespace(text="Hello  there"), SimpleNamespace(text=" "), SimpleNamespace(text="world\n")])

    text = client_with(api).fetch_transcript("https://youtu.be/dQw4w9WgXcQ")

    assert text == "Hello there world"
    assert api.calls == [("dQw4w9WgXcQ", ["en"])]


def test_fetch_transcript_disabled():
    api = FakeTranscriptApi(error=TranscriptsDisabled("dQw4w9WgXcQ"))

    with pytest.raises(TranscriptNotFound) as excinfo:
        client_with(api).fetch_transcript("dQw4w9WgXcQ")

    assert isinstance(excinfo.value, DocumentUnavailable)


def test_fetch_transcript_empty():
    api = FakeTranscriptApi([SimpleNamespace(text="  ")])

    with pytest.raises(EmptyTranscript):
        client_with(api).fetch_transcript("dQw4w9WgXcQ")
