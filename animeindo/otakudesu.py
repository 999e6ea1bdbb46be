"""Scraper for otakudesu.best.

Every public method swallows network and markup failures: it logs the
error and returns the empty value named in its docstring.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from animeindo.config import OTAKUDESU, SourceConfig
from animeindo.extract import (
    clean_text,
    clean_title,
    episode_label,
    episode_number,
    resolution_key,
    resolve_image,
    select_attr,
    select_text,
    slug_from_url,
    split_label,
)
from animeindo.client import SourceClient
from animeindo.models import (
    AnimeDetail,
    CatalogEntry,
    DownloadLink,
    DownloadTable,
    EpisodeList,
    EpisodeRef,
    Genre,
    MirrorOption,
    MirrorToken,
    MirrorTokenError,
    OngoingEntry,
    StreamLink,
)

logger = logging.getLogger(__name__)

# admin-ajax handler ids used by the site's player script. They cannot be
# derived from the pages; update them when the site rotates them.
NONCE_ACTION = "aa1208d27f29ca340c92c66d1926f13f"
STREAM_ACTION = "2a3505c93b0035d3f455df82bf976b84"

MIRROR_RESOLUTIONS = ("360p", "480p", "720p")
SYNOPSIS_FALLBACK = "Sinopsis tidak tersedia."

INFO_LABELS = {
    "Judul": "title",
    "Skor": "rating",
    "Status": "status",
    "Produser": "producer",
    "Tipe": "type",
    "Total Episode": "total_episode",
    "Durasi": "duration",
    "Tanggal Rilis": "released",
    "Studio": "studio",
}
DETAIL_FIELDS = ("title", "rating", "status")

SRC_RE = re.compile(r'src="([^"]+)"')


def display_title(raw: str) -> str:
    return clean_title(raw) or raw


def genre_slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def extract_stream_url(fragment: str) -> Optional[str]:
    """Pull the player URL out of a decoded embed fragment."""
    m = SRC_RE.search(fragment)
    if m:
        return m.group(1)
    fragment = fragment.strip()
    if fragment.startswith("http"):
        return fragment
    return None


def _genre_card(el: Tag, base_url: str) -> CatalogEntry:
    raw = select_text(el, ".col-anime-title a")
    return CatalogEntry(
        title=display_title(raw),
        url=select_attr(el, ".col-anime-title a", "href"),
        image=resolve_image(el.select_one(".col-anime-cover img"), base_url),
        rating=select_text(el, ".col-anime-rating"),
        episodes=select_text(el, ".col-anime-eps"),
    )


def _keyword_card(el: Tag, base_url: str) -> CatalogEntry:
    raw = select_text(el, "h2 a")
    fields = dict(split_label(row.get_text()) for row in el.select(".set"))
    return CatalogEntry(
        title=display_title(raw),
        url=select_attr(el, "h2 a", "href"),
        image=resolve_image(el.select_one("img"), base_url),
        rating=fields.get("Rating", ""),
        status=fields.get("Status", ""),
    )


# Genre listings and keyword results use unrelated markup, so each search
# branch names its own row selector and card parser.
SEARCH_LAYOUTS = {
    "genre": (".col-anime", _genre_card),
    "keyword": ("ul.chivsrc li", _keyword_card),
}


class OtakudesuScraper:
    ANIME_PATH = "/anime/"
    EPISODE_PATH = "/episode/"
    GENRE_PATH = "/genres/"

    def __init__(self, client: Optional[SourceClient] = None, config: SourceConfig = OTAKUDESU):
        self.client = client or SourceClient(config)
        self.base_url = self.client.base_url

    def search(self, query: str = "", page: int = 1, genres: Optional[Sequence[str]] = None) -> List[CatalogEntry]:
        """Keyword search, or a genre listing when ``query`` is empty.

        Only ``genres[0]`` is used. Returns ``[]`` when there is nothing to
        search for, when the site bounces the request to its home page, or
        on failure.
        """
        genres = list(genres or [])
        if query:
            path, params, layout = "", {"s": query, "post_type": "anime"}, "keyword"
        elif genres:
            path, params, layout = f"genres/{genre_slug(genres[0])}/page/{page}", None, "genre"
        else:
            return []

        try:
            soup, response = self.client.soup(path, params=params)
            if self.client.redirected_home(response):
                logger.info("Search redirected home (q=%r, genres=%r): no results", query, genres)
                return []
            selector, parse_card = SEARCH_LAYOUTS[layout]
            return [parse_card(el, self.base_url) for el in soup.select(selector)]
        except Exception as e:
            logger.error("Search error (q=%r, genres=%r): %s", query, genres, e)
            return []

    def get_home_page(self, page: int = 1) -> List[OngoingEntry]:
        """Ongoing series, newest first. ``[]`` on failure."""
        try:
            soup, _ = self.client.soup(f"ongoing-anime/page/{page}")
            results = []
            for item in soup.select(".venz ul li"):
                raw = select_text(item, ".jdlflm")
                results.append(OngoingEntry(
                    title=display_title(raw),
                    url=select_attr(item, "a", "href"),
                    image=resolve_image(item.select_one("img"), self.base_url),
                    episode=episode_number(select_text(item, ".epz")),
                    day=select_text(item, ".epztipe"),
                    released=select_text(item, ".newnime"),
                ))
            return results
        except Exception as e:
            logger.error("Get home page error (page %s): %s", page, e)
            return []

    def get_anime(self, url: str) -> Optional[AnimeDetail]:
        """Series detail without its episode list (see :meth:`get_episodes`).

        ``None`` for URLs outside ``/anime/`` and on failure.
        """
        if not url or not url.startswith(f"{self.base_url}{self.ANIME_PATH}"):
            return None
        try:
            soup, _ = self.client.soup(url)
            return self._parse_anime(soup)
        except Exception as e:
            logger.error("Get anime error (%s): %s", url, e)
            return None

    def _parse_anime(self, soup: BeautifulSoup) -> AnimeDetail:
        paragraphs = [clean_text(p.get_text()) for p in soup.select(".sinopc p")]
        detail = AnimeDetail(synopsis="\n".join(p for p in paragraphs if p) or SYNOPSIS_FALLBACK)

        for row in soup.select("div.infozin div.infozingle p"):
            label, value = split_label(row.get_text())
            key = INFO_LABELS.get(label)
            if key is None:
                continue
            if key in DETAIL_FIELDS:
                setattr(detail, key, value)
            else:
                detail.metadata[key] = value

        detail.title = display_title(detail.title)
        detail.image = resolve_image(soup.select_one(".fotoanime img"), self.base_url)
        detail.genres = [
            clean_text(a.get_text())
            for a in soup.select("div.infozin div.infozingle a")
            if self.GENRE_PATH in (a.get("href") or "")
        ]
        return detail

    def get_episodes(self, url: str) -> EpisodeList:
        """Title and episode links of a series page; ``EpisodeList()`` on failure."""
        if not url:
            return EpisodeList()
        try:
            soup, _ = self.client.soup(url)
            return self._parse_episodes(soup)
        except Exception as e:
            logger.error("Get episodes error (%s): %s", url, e)
            return EpisodeList()

    def _parse_episodes(self, soup: BeautifulSoup) -> EpisodeList:
        title_span = soup.select_one('p span:-soup-contains("Judul")')
        raw = split_label(title_span.get_text())[1] if title_span else ""

        episodes = []
        for a in soup.select("div.episodelist ul li a"):
            href = a.get("href")
            if not href or self.EPISODE_PATH not in href:
                continue
            episodes.append(EpisodeRef(
                title=episode_label(clean_text(a.get_text())),
                url=href.strip(),
                date=select_text(a.find_parent("li"), "span.zeebr"),
            ))
        return EpisodeList(title=display_title(raw), episodes=episodes)

    def get_download_link(self, url: str) -> DownloadTable:
        """Download links keyed by resolution; ``DownloadTable()`` on failure."""
        if not url:
            return DownloadTable()
        try:
            soup, _ = self.client.soup(url)
            return self._parse_downloads(soup)
        except Exception as e:
            logger.error("Get download link error (%s): %s", url, e)
            return DownloadTable()

    def _parse_downloads(self, soup: BeautifulSoup) -> DownloadTable:
        raw = select_text(soup, "div.download h4")
        title = re.sub(r"\[.*?\]", "", re.sub(r"Subtitle Indonesia", "", raw, flags=re.I))
        table = DownloadTable(title=title.strip())

        for row in soup.select("div.download ul > li"):
            strong = row.find("strong")
            label = clean_text(strong.get_text()) if strong else ""
            if not label:
                continue
            parts = label.split()
            fmt = parts[0] if len(parts) > 1 else ""
            table.resolutions.append(label)
            table.results[resolution_key(label)] = [
                DownloadLink(format=fmt, resolution=label, server=clean_text(a.get_text()), url=a.get("href"))
                for a in row.find_all("a")
            ]
        return table

    def get_data_content(self, url: str) -> Dict[str, List[MirrorOption]]:
        """Mirror tokens per resolution; every bucket is present, possibly empty."""
        if not url:
            return {res: [] for res in MIRROR_RESOLUTIONS}
        try:
            soup, _ = self.client.soup(url)
            return {
                res: [
                    MirrorOption(label=clean_text(a.get_text()), data_content=a.get("data-content"))
                    for a in soup.select(f"div.mirrorstream ul.m{res} a")
                ]
                for res in MIRROR_RESOLUTIONS
            }
        except Exception as e:
            logger.error("Get data content error (%s): %s", url, e)
            return {res: [] for res in MIRROR_RESOLUTIONS}

    def get_videos(self, data_content: Optional[str]) -> StreamLink:
        """Resolve one mirror token to its player URL.

        The site wants a fresh nonce for each lookup, so one is requested
        every time. Any failure yields ``StreamLink(iframe=None)``.
        """
        try:
            token = MirrorToken.decode(data_content)
        except MirrorTokenError as e:
            logger.error("Get videos error: %s", e)
            return StreamLink()

        try:
            nonce = self._fetch_nonce()
            if not nonce:
                logger.error("Get videos error: no nonce returned")
                return StreamLink()
            return StreamLink(iframe=self._fetch_stream(token, nonce))
        except Exception as e:
            logger.error("Get videos error (q=%s): %s", token.quality, e)
            return StreamLink()

    def _fetch_nonce(self) -> Optional[str]:
        data = self.client.post_ajax({"action": NONCE_ACTION}).json().get("data")
        return str(data) if data else None

    def _fetch_stream(self, token: MirrorToken, nonce: str) -> Optional[str]:
        form = token.as_form()
        form.update(nonce=nonce, action=STREAM_ACTION)
        payload = self.client.post_ajax(form).json().get("data")
        if not payload:
            return None
        return extract_stream_url(base64.b64decode(payload).decode("utf-8"))

    def get_genre_list(self) -> List[Genre]:
        try:
            soup, _ = self.client.soup("genre-list/")
            return [
                Genre(name=clean_text(a.get_text()), slug=slug_from_url(a.get("href")), url=a.get("href"))
                for a in soup.select("ul.genres a")
                if a.get("href")
            ]
        except Exception as e:
            logger.error("Get genre list error: %s", e)
            return []
