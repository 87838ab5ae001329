"""Video metadata extraction from Pinterest pin HTML.

Three independent scan passes each return a list of candidate
``VideoQuality`` objects:

1. embedded ``"video": {...}`` object literals with an mp4 ``url``,
2. schema.org ``"contentUrl"`` fields,
3. bare ``v*.pinimg.com/videos/...mp4`` CDN URLs.

``merge_candidates`` folds them together with first-pass-wins dedup on
URL, and ``extract_video_metadata`` ranks the result best-first.
"""

import html as html_lib
import re
from typing import Dict, Iterable, List, Optional

from pinvid.errors import NoVideoFound
from pinvid.models import VideoMetadata, VideoQuality

VIDEO_OBJECT_PATTERN = re.compile(r'"video"\s*:\s*\{([^}]*)\}')
VIDEO_OBJECT_URL_PATTERN = re.compile(r'"url"\s*:\s*"([^"]+\.mp4[^"]*)"')
WIDTH_PATTERN = re.compile(r'"width"\s*:\s*(\d+)')
HEIGHT_PATTERN = re.compile(r'"height"\s*:\s*(\d+)')

CONTENT_URL_PATTERN = re.compile(r'"contentUrl"\s*:\s*"(https:[^"\\]*\.mp4[^"\\]*)"')

DIRECT_URL_PATTERN = re.compile(r'https://v\d*\.pinimg\.com/videos/[^"\s]+\.mp4[^"\s]*')

TITLE_PATTERN = re.compile(
    r'<meta[^>]+property="og:title"[^>]+content="([^"]+)"', re.IGNORECASE
)
AUTHOR_PATTERN = re.compile(
    r'"owner"\s*:\s*\{[^}]*"full_name"\s*:\s*"([^"]+)"', re.IGNORECASE
)
DURATION_PATTERN = re.compile(r'"duration"\s*:\s*"PT([0-9]+)S"', re.IGNORECASE)

# Checked in order; first substring found wins.
URL_QUALITY_MARKERS = (
    ("_hd", "HD"),
    ("_720", "720p"),
    ("_480", "480p"),
    ("_360", "360p"),
)

LABEL_DEFAULT = "default"
LABEL_SD = "SD"


def _unescape(url: str) -> str:
    return url.replace("\\u0026", "&")


def is_caption_url(url: str) -> bool:
    return ".vtt" in url or "/captions/" in url


def label_from_url(url: str) -> str:
    for marker, label in URL_QUALITY_MARKERS:
        if marker in url:
            return label
    return LABEL_SD


def sort_height(quality: VideoQuality) -> int:
    """Height used for ranking only; never written back to the quality."""
    if quality.height:
        return quality.height
    label = quality.quality_label or ""
    if "HD" in label:
        return 1080
    if "720" in label:
        return 720
    return 480


def find_video_object_candidates(page: str) -> List[VideoQuality]:
    candidates: List[VideoQuality] = []
    for match in VIDEO_OBJECT_PATTERN.finditer(page):
        fragment = match.group(1)
        url_match = VIDEO_OBJECT_URL_PATTERN.search(fragment)
        if not url_match:
            continue
        url = _unescape(url_match.group(1))
        if is_caption_url(url):
            continue

        rest = fragment[url_match.end():]
        width_match = WIDTH_PATTERN.search(rest)
        height_match = HEIGHT_PATTERN.search(rest)
        width = int(width_match.group(1)) if width_match else None
        height = int(height_match.group(1)) if height_match else None

        label = f"{height}p" if height else LABEL_DEFAULT
        candidates.append(
            VideoQuality(url=url, quality_label=label, width=width, height=height)
        )
    return candidates


def find_content_url_candidates(page: str) -> List[VideoQuality]:
    candidates: List[VideoQuality] = []
    for match in CONTENT_URL_PATTERN.finditer(page):
        url = _unescape(match.group(1))
        if is_caption_url(url):
            continue
        candidates.append(VideoQuality(url=url, quality_label=LABEL_SD))
    return candidates


def find_direct_cdn_candidates(page: str) -> List[VideoQuality]:
    candidates: List[VideoQuality] = []
    for match in DIRECT_URL_PATTERN.finditer(page):
        url = _unescape(match.group(0))
        if is_caption_url(url):
            continue
        candidates.append(VideoQuality(url=url, quality_label=label_from_url(url)))
    return candidates


def merge_candidates(*passes: Iterable[VideoQuality]) -> List[VideoQuality]:
    """Fold candidate lists in precedence order, keeping the first sighting of each URL."""
    seen: Dict[str, VideoQuality] = {}
    for candidates in passes:
        for quality in candidates:
            if quality.url not in seen:
                seen[quality.url] = quality
    return list(seen.values())


def rank_qualities(qualities: List[VideoQuality]) -> List[VideoQuality]:
    return sorted(qualities, key=sort_height, reverse=True)


def _first_group(pattern: "re.Pattern[str]", page: str) -> Optional[str]:
    match = pattern.search(page)
    return match.group(1) if match else None


def extract_title(page: str) -> Optional[str]:
    title = _first_group(TITLE_PATTERN, page)
    return html_lib.unescape(title) if title is not None else None


def extract_author(page: str) -> Optional[str]:
    return _first_group(AUTHOR_PATTERN, page)


def extract_duration(page: str) -> Optional[int]:
    seconds = _first_group(DURATION_PATTERN, page)
    return int(seconds) if seconds is not None else None


def extract_video_metadata(page: str, source_url: str) -> VideoMetadata:
    """Build ``VideoMetadata`` from raw pin HTML.

    Raises:
        NoVideoFound: If none of the scan passes yields a video URL.
    """
    qualities = merge_candidates(
        find_video_object_candidates(page),
        find_content_url_candidates(page),
        find_direct_cdn_candidates(page),
    )
    if not qualities:
        raise NoVideoFound()

    ranked = rank_qualities(qualities)
    best = ranked[0]

    if len(ranked) == 1:
        ranked = [
            VideoQuality(
                url=best.url,
                quality_label=LABEL_DEFAULT,
                width=best.width,
                height=best.height,
            )
        ]

    return VideoMetadata(
        source_url=source_url,
        video_url=best.url,
        qualities=ranked,
        title=extract_title(page),
        author=extract_author(page),
        duration_seconds=extract_duration(page),
    )
