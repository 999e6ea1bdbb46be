"""Field extraction helpers shared by both scrapers.

Every helper returns a usable value for missing input: an empty string for
text, ``None`` for optional links and the placeholder card for images.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import Tag

IMAGE_ATTRIBUTES = ("data-src", "data-lazy-src", "srcset", "src")
# 1x1 GIF that lazy loaders put in src before the real image arrives.
UNLOADED_IMAGE_MARKER = "data:image/gif"

EPISODE_RE = re.compile(r"Episode\s+(\d+(?:\.\d+)?)", re.I)

# Gray "NO SIGNAL" card served when a record has no usable cover image.
PLACEHOLDER_IMAGE = (
    "data:image/svg+xml;base64,"
    "PHN2ZyB3aWR0aD0iMzAwIiBoZWlnaHQ9IjQ1MCIgdmlld0JveD0iMCAwIDMwMCA0NTAiIGZpbGw9"
    "Im5vbmUiIHhtbG5zPSJodHRwOi8vd3d3LnczLm9yZy8yMDAwL3N2ZyI+CjxkZWZzPgo8bGluZWFy"
    "R3JhZGllbnQgaWQ9InBhaW50MF9saW5ZWFIiIHgxPSIwIiB5MT0iMCIgeDI9IjMwMCIgeTI9IjQ1"
    "MCIgZ3JhZGllbnRVbml0cz0idXNlclNwYWNlT25Vc2UiPgo8c3RvcCBzdG9wLWNvbG9yPSIjMUEx"
    "QTIwIi8+CjxzdG9wIG9mZnNldD0iMSIgc3RvcC1jb2xvcj0iIzBGMEYxMiIvPgo8L2xpbmVhckdy"
    "YWRpZW50Pgo8bGluZWFyR3JhZGllbnQgaWQ9InBhaW50MV9saW5ZWFIiIHgxPSIxNTAiIHkxPSIx"
    "ODAiIHgyPSIxNTAiIHkyPSIyNzAiIGdyYWRpZW50VW5pdHM9InVzZXJTcGFjZU9uVXNlIj4KPHN0"
    "b3Agc3RvcC1jb2xvcj0iI0ZGNDc1NyIvPgo8c3RvcCBvZmZzZXQ9IjEiIHN0b3AtY29sb3I9IiNF"
    "MzNBNEIiLz4KPC9saW5ZWFJHcmFkaWVudD4KPC9kZWZzPgo8cmVjdCB3aWR0aD0iMzAwIiBoZWln"
    "aHQ9IjQ1MCIgZmlsbD0idXJsKCNwYWludDBfbGluWUFSKSIvPgo8cGF0aCBkPSJNMTUwIDIyNUwx"
    "MzAgMjA1SDE3MEwxNTAgMjI1WiIgZmlsbD0idXJsKCNwYWludDFfbGluWUFSKSIvPgo8cGF0aCBm"
    "aWxsLXJ1bGU9ImV2ZW5vZGQiIGNsaXAtcnVsZT0iZXZlbm9kZCIgZD0iTTE1MCAxNTBDMTMwLjY3"
    "IDE1MCAxMTUgMTY1LjY3IDExNSAxODVWMTkwQzExNSAxOTIuNzYxIDExMi43NjEgMTk1IDExMCAx"
    "OTVWMTg1QzExMCAxNjIuOTA5IDEyNy45MDkgMTQ1IDE1MCAxNDVDMTcyLjA5MSAxNDUgMTkwIDE2"
    "Mi45MDkgMTkwIDE4NVYxOTVDMTg3LjIzOSAxOTUgMTkwIDE5Mi43NjEgMTkwIDE5MFYxODVDMTkw"
    "IDE2NS42NyAxNzQuMzMgMTUwIDE1MCAxNTBaTTEzNSAybDMwVzEzNSAybDIwQzEzNSAyMTcuMjM5"
    "IDEzMi43NjEgMjE1IDEzMCAyMTVWMjMwQzEzMi43NjEgMjMwIDEzNSAyMzIuMjM5IDEzNSAyMzVW"
    "MTkwWiIgZmlsbD0iIzMzMzMzMyIvPgo8Y2lyY2xlIGN4PSIxNTAiIGN5PSIxNTAiIHI9IjUiIGZp"
    "bGw9IiNGRjQ3NTciLz4KPHRleHQgeD0iMTUwIiB5PSIyNzAiIGZpbGw9IiM2NjY2NjYiIGZvbnQt"
    "ZmFtaWx5PSJzYW5zLXNlcmlmIiBmb250LXdlaWdodD0iNjAwIiBmb250LXNpemU9IjE0IiB0ZXh0"
    "LWFuY2hvcj0ibWlkZGxlIiBsZXR0ZXItc3BhY2luZz0iMiI+Tk8gU0lHTkFMPC90ZXh0Pgo8L3N2"
    "Zz4="
)


def clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return value.replace("\xa0", " ").strip()


def clean_title(value: Optional[str]) -> str:
    """Strip site branding and episode suffixes from a display title."""
    if not value:
        return ""
    value = re.sub(r"\[.*?\]", "", value)
    value = re.sub(r"\(.*?\)", "", value)
    value = re.sub(r"Subtitle Indonesia", "", value, flags=re.I)
    value = EPISODE_RE.sub("", value)
    value = re.sub(r"\s*-\s*$", "", value)
    value = re.sub(r"\s+", " ", value)
    return value.strip()


def _image_candidates(node: Tag) -> Iterator[str]:
    for attr in IMAGE_ATTRIBUTES:
        value = clean_text(node.get(attr))
        if not value:
            continue
        if attr == "srcset":
            value = value.split()[0].rstrip(",")
        yield value


def resolve_image(node: Optional[Tag], base_url: Optional[str] = None) -> str:
    """Return the best image URL of ``node``, never an empty value."""
    if node is None:
        return PLACEHOLDER_IMAGE
    for url in _image_candidates(node):
        if UNLOADED_IMAGE_MARKER in url:
            continue
        if base_url:
            return urljoin(base_url.rstrip("/") + "/", url)
        return url
    return PLACEHOLDER_IMAGE


def select_text(node: Optional[Tag], selector: str) -> str:
    """Cleaned text of every element matching ``selector``, concatenated."""
    if node is None:
        return ""
    return clean_text("".join(el.get_text() for el in node.select(selector)))


def select_attr(node: Optional[Tag], selector: str, attr: str) -> Optional[str]:
    if node is None:
        return None
    el = node.select_one(selector)
    if el is None:
        return None
    value = el.get(attr)
    return value.strip() if value else None


def first_text(node: Optional[Tag], selectors: Iterable[str], default: str = "") -> str:
    """Try ``selectors`` in order; the first one yielding text wins."""
    for selector in selectors:
        text = select_text(node, selector)
        if text:
            return text
    return default


def episode_number(text: Optional[str]) -> Optional[str]:
    m = EPISODE_RE.search(text or "")
    return m.group(1) if m else None


def episode_label(text: str) -> str:
    """Normalize ``"Nonton X Episode 12 Sub Indo"`` to ``"Episode 12"``."""
    number = episode_number(text)
    return f"Episode {number}" if number else text


def resolution_key(label: str) -> str:
    # "MP4 480p" -> "480p"
    parts = label.split()
    return parts[1] if len(parts) > 1 else label


def split_label(text: str) -> Tuple[str, str]:
    """Split ``"Label : value"`` on the first colon; ``("", text)`` without one."""
    label, sep, value = text.partition(":")
    if not sep:
        return "", clean_text(text)
    return clean_text(label), clean_text(value)


def slug_from_url(url: Optional[str]) -> str:
    if not url:
        return ""
    return urlparse(url).path.strip("/").split("/")[-1]
