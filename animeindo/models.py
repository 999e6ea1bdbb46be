from __future__ import annotations

import base64
import binascii
import json
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Dict, List, Optional


class MirrorTokenError(ValueError):
    """Raised when a mirror ``data-content`` value cannot be decoded."""


@dataclass(slots=True)
class CatalogEntry:
    title: str
    url: Optional[str]
    image: str
    rating: str = ""
    status: str = ""
    type: str = ""
    episodes: str = ""


@dataclass(slots=True)
class OngoingEntry(CatalogEntry):
    episode: Optional[str] = None
    day: str = ""
    released: str = ""


@dataclass(slots=True)
class LatestEntry(CatalogEntry):
    episode: str = ""
    posted_by: str = ""
    released: str = ""


@dataclass(slots=True)
class RankedEntry(CatalogEntry):
    rank: str = ""


@dataclass(slots=True)
class SearchEntry(CatalogEntry):
    synopsis: str = ""
    genres: List[str] = field(default_factory=list)


@dataclass(slots=True)
class EpisodeRef:
    title: str
    url: str
    date: str = ""


@dataclass(slots=True)
class EpisodeList:
    title: Optional[str] = None
    episodes: List[EpisodeRef] = field(default_factory=list)


@dataclass(slots=True)
class AnimeDetail:
    title: str = ""
    image: str = ""
    synopsis: str = ""
    rating: str = ""
    status: str = ""
    genres: List[str] = field(default_factory=list)
    episodes: List[EpisodeRef] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class DownloadLink:
    format: str
    resolution: str
    server: str
    url: Optional[str]


@dataclass(slots=True)
class DownloadTable:
    title: str = ""
    resolutions: List[str] = field(default_factory=list)
    results: Dict[str, List[DownloadLink]] = field(default_factory=dict)


@dataclass(slots=True)
class StreamServer:
    server: str
    iframe: Optional[str] = None


@dataclass(slots=True)
class StreamLink:
    iframe: Optional[str] = None


@dataclass(slots=True)
class EpisodeDetail:
    title: str = ""
    release_date: str = ""
    prev_episode: Optional[str] = None
    next_episode: Optional[str] = None
    all_episodes_link: Optional[str] = None
    downloads: List[DownloadLink] = field(default_factory=list)
    stream_servers: List[StreamServer] = field(default_factory=list)


@dataclass(slots=True)
class ServerDescriptor:
    name: str
    post: Optional[str]
    nume: Optional[str]
    type: Optional[str]

    def as_form(self) -> Dict[str, str]:
        return {
            "post": self.post or "",
            "nume": self.nume or "",
            "type": self.type or "",
        }


@dataclass(slots=True)
class MirrorOption:
    label: str
    data_content: Optional[str]


@dataclass(slots=True)
class MirrorToken:
    """Decoded form of a mirror ``data-content`` attribute.

    The attribute is base64-encoded JSON such as
    ``{"id": 123, "i": 0, "q": "480p"}``. Tokens are tied to the upstream
    session and should be resolved right away.
    """

    id: str
    index: str
    quality: str

    @classmethod
    def decode(cls, raw: Optional[str]) -> "MirrorToken":
        if not raw or not isinstance(raw, str):
            raise MirrorTokenError("empty mirror token")
        raw = raw.strip()
        try:
            payload = json.loads(base64.b64decode(raw + "=" * (-len(raw) % 4)).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise MirrorTokenError(f"undecodable mirror token: {exc}") from exc
        if not isinstance(payload, dict) or not all(k in payload for k in ("id", "i", "q")):
            raise MirrorTokenError("mirror token lacks id/i/q")
        return cls(id=str(payload["id"]), index=str(payload["i"]), quality=str(payload["q"]))

    def as_form(self) -> Dict[str, str]:
        return {"id": self.id, "i": self.index, "q": self.quality}


@dataclass(slots=True)
class Genre:
    name: str
    slug: str
    url: str


@dataclass(slots=True)
class ScheduleEntry:
    title: str
    url: Optional[str]
    time: str
    image: str
    genres: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ScheduleDay:
    day: str
    entries: List[ScheduleEntry] = field(default_factory=list)


def to_dict(record: Any) -> Any:
    """Turn records (or lists/dicts of them) into JSON-ready values.

    ``AnimeDetail.metadata`` is flattened into the top level; it never
    overrides a first-class field.
    """
    if isinstance(record, list):
        return [to_dict(item) for item in record]
    if isinstance(record, dict):
        return {key: to_dict(value) for key, value in record.items()}
    if not is_dataclass(record) or isinstance(record, type):
        return record
    data = asdict(record)
    extra = data.pop("metadata", None) or {}
    for key, value in extra.items():
        data.setdefault(key, value)
    return data
