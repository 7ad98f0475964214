import re
from typing import Any, Dict, Optional

from pytube import YouTube
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from .exceptions import EmptyTranscript, InvalidVideoReference, TranscriptNotFound

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")


def extract_video_id(url: str) -> str:
    """Extract video ID from a YouTube URL or bare id."""
    url = url.strip()
    if "youtu.be/" in url:
        candidate = url.split("youtu.be/")[1].split("?")[0].split("/")[0]
    elif "v=" in url:
        candidate = url.split("v=")[1].split("&")[0]
    elif "/shorts/" in url or "/embed/" in url:
        candidate = url.rstrip("/").split("/")[-1].split("?")[0]
    else:
        candidate = url

    if not _VIDEO_ID_RE.match(candidate):
        raise InvalidVideoReference(f"Invalid YouTube URL: {url}")
    return candidate


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


class YoutubeClient:
    def __init__(self, languages: Optional[list] = None):
        self.client = YouTubeTranscriptApi()
        self.languages = languages or ["en"]

    def fetch_transcript(self, document_ref: str) -> str:
        """
        Return the transcript of a video as one block of plain text.

        Raises DocumentUnavailable subclasses when the reference is invalid,
        no transcript exists, or the transcript is empty.
        """
        video_id = extract_video_id(document_ref)
        try:
            transcript = self.client.fetch(video_id, languages=self.languages)
        except CouldNotRetrieveTranscript as e:
            raise TranscriptNotFound(f"No captions found for video ID: {video_id} ({e.__class__.__name__})") from e

        text = " ".join(snippet.text.strip() for snippet in transcript if snippet.text.strip())
        text = re.sub(r"\s+", " ", text).strip()
        if not text:
            raise EmptyTranscript(f"No transcript available for video ID: {video_id}")
        return text

    def get_video_metadata(self, video_id: str, url: str = None) -> Dict[str, Any]:
        """
        Get video metadata using pytube.
        Returns: title, channel, duration (seconds), URL
        """
        try:
            yt = YouTube(url or f"https://www.youtube.com/watch?v={video_id}")
            return {
                "title": yt.title,
                "channel": yt.author,
                "duration": yt.length,
                "url": f"https://www.youtube.com/watch?v={video_id}",
            }
        except Exception:
            # pytube breaks whenever YouTube changes its page layout
            return {
                "title": "Unknown",
                "channel": "Unknown",
                "duration": 0,
                "url": f"https://www.youtube.com/watch?v={video_id}",
            }
