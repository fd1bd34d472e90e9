import html
import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

import httpx

from linguachat.models.api.messages import LinkPreview

log = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s]+")
YOUTUBE_PATTERN = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/)([a-zA-Z0-9_-]{11})"
)

_TITLE_PATTERNS = (
    re.compile(r'<meta property="og:title" content="([^"]*)"', re.IGNORECASE),
    re.compile(r'<meta name="twitter:title" content="([^"]*)"', re.IGNORECASE),
    re.compile(r"<title>([^<]*)</title>", re.IGNORECASE),
)
_DESCRIPTION_PATTERNS = (
    re.compile(r'<meta property="og:description" content="([^"]*)"', re.IGNORECASE),
    re.compile(r'<meta name="twitter:description" content="([^"]*)"', re.IGNORECASE),
    re.compile(r'<meta name="description" content="([^"]*)"', re.IGNORECASE),
)
_IMAGE_PATTERNS = (
    re.compile(r'<meta property="og:image" content="([^"]*)"', re.IGNORECASE),
    re.compile(r'<meta name="twitter:image" content="([^"]*)"', re.IGNORECASE),
)
_SITE_NAME_PATTERN = re.compile(
    r'<meta property="og:site_name" content="([^"]*)"', re.IGNORECASE
)


def extract_urls(text: str) -> List[str]:
    """Return every http(s) URL found in a message text, in order."""
    return URL_PATTERN.findall(text or "")


def _first_match(patterns, document: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(document)
        if match:
            return html.unescape(match.group(1).strip())
    return None


def parse_preview(url: str, document: str) -> LinkPreview:
    """Build a preview from Open Graph / Twitter / <title> metadata."""
    site_match = _SITE_NAME_PATTERN.search(document)
    return LinkPreview(
        url=url,
        title=_first_match(_TITLE_PATTERNS, document) or urlparse(url).hostname,
        description=_first_match(_DESCRIPTION_PATTERNS, document) or "",
        image=_first_match(_IMAGE_PATTERNS, document),
        site_name=html.unescape(site_match.group(1)) if site_match else None,
    )


class LinkPreviewClient:
    """Scrapes link metadata for message previews using httpx."""

    USER_AGENT = "Mozilla/5.0 (compatible; LinguaChatBot/1.0)"

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    async def fetch_preview(self, url: str) -> Optional[LinkPreview]:
        """Return preview metadata for ``url``, or None when it cannot be fetched."""
        youtube_match = YOUTUBE_PATTERN.search(url)
        if youtube_match:
            video_id = youtube_match.group(1)
            return LinkPreview(
                url=url,
                title="YouTube Video",
                description="Watch on YouTube",
                image=f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg",
                site_name="YouTube",
            )

        headers = {"User-Agent": self.USER_AGENT}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True
            ) as client:
                response = await client.get(url, headers=headers)
                response.raise_for_status()
                document = response.text
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.warning("Link preview fetch failed for %s: %s", url, exc)
            return None

        return parse_preview(url, document)
