"""Scraper for samehadaku.

Same contract as :mod:`animeindo.otakudesu`: no method raises; failures are
logged and an empty value is returned.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from animeindo.config import SAMEHADAKU, SourceConfig
from animeindo.extract import (
    clean_text,
    first_text,
    resolve_image,
    select_attr,
    select_text,
    split_label,
)
from animeindo.client import SourceClient
from animeindo.models import (
    AnimeDetail,
    DownloadLink,
    EpisodeDetail,
    EpisodeRef,
    LatestEntry,
    RankedEntry,
    ScheduleDay,
    ScheduleEntry,
    SearchEntry,
    ServerDescriptor,
    StreamServer,
)

logger = logging.getLogger(__name__)

PLAYER_ACTION = "player_ajax"
UNRATED = "?"
SCHEDULE_DAYS = ("senin", "selasa", "rabu", "kamis", "jumat", "sabtu", "minggu")

SEARCH_RATING_SELECTORS = (".score", ".content-thumb .score")
DETAIL_RATING_SELECTORS = (".rtg .skor", ".rating strong", "span[itemprop='ratingValue']")
SYNOPSIS_SELECTORS = (".desc", ".entry-content")

# Parsed ".spe" labels that would shadow typed AnimeDetail fields.
RESERVED_KEYS = {"title", "image", "synopsis", "rating", "status", "genres", "episodes"}


def metadata_key(label: str) -> str:
    # "Total Episode" -> "total_episode"
    return re.sub(r"\s+", "_", label.strip().lower())


class SamehadakuScraper:
    def __init__(self, client: Optional[SourceClient] = None, config: SourceConfig = SAMEHADAKU):
        self.client = client or SourceClient(config)
        self.base_url = self.client.base_url
        self.max_workers = self.client.config.max_workers

    def get_top_ten_week(self) -> List[RankedEntry]:
        try:
            soup, _ = self.client.soup("")
            results = []
            for item in soup.select(".topten-animesu ul li"):
                ranks = item.select(".is-topten b")
                results.append(RankedEntry(
                    title=select_text(item, ".judul"),
                    url=select_attr(item, "a.series", "href"),
                    image=resolve_image(item.select_one("img"), self.base_url),
                    rating=select_text(item, ".rating") or UNRATED,
                    rank=clean_text(ranks[-1].get_text()) if ranks else "",
                ))
            return results
        except Exception as e:
            logger.error("Get top 10 error: %s", e)
            return []

    def get_anime_list(self, page: int = 1) -> List[LatestEntry]:
        path = "anime-terbaru/" if page == 1 else f"anime-terbaru/page/{page}/"
        try:
            soup, _ = self.client.soup(path)
            results = []
            for item in soup.select(".post-show ul li"):
                released = item.select_one('span:-soup-contains("Released on")')
                results.append(LatestEntry(
                    title=select_text(item, ".entry-title a"),
                    url=select_attr(item, ".entry-title a", "href"),
                    image=resolve_image(item.select_one(".thumb img"), self.base_url),
                    episode=select_text(item, 'span:-soup-contains("Episode") author'),
                    posted_by=select_text(item, "span.author.vcard author"),
                    released=split_label(released.get_text())[1] if released else "",
                ))
            return results
        except Exception as e:
            logger.error("Get anime list error (page %s): %s", page, e)
            return []

    def search(
        self,
        query: str = "",
        page: int = 1,
        status: str = "",
        type_: str = "",
        order: str = "title",
        genres: Optional[Sequence[str]] = None,
    ) -> List[SearchEntry]:
        """Filtered catalog listing. All filters are sent, blank or not."""
        path = "daftar-anime-2/" if page == 1 else f"daftar-anime-2/page/{page}/"
        params = [("title", query), ("status", status), ("type", type_), ("order", order)]
        params.extend(("genre[]", genre) for genre in genres or [])
        try:
            soup, _ = self.client.soup(path, params=params)
            return [self._search_card(el) for el in soup.select(".animpost")]
        except Exception as e:
            logger.error("Search error on page %s (q=%r): %s", page, query, e)
            return []

    def _search_card(self, el: Tag) -> SearchEntry:
        return SearchEntry(
            title=select_text(el, ".title h2"),
            url=select_attr(el, "a", "href"),
            image=resolve_image(el.select_one(".content-thumb img"), self.base_url),
            rating=first_text(el, SEARCH_RATING_SELECTORS, UNRATED),
            type=select_text(el, ".content-thumb .type"),
            status=select_text(el, ".data .type"),
            synopsis=select_text(el, ".stooltip .ttls"),
            genres=[clean_text(a.get_text()) for a in el.select(".stooltip .genres .mta a")],
        )

    def get_anime(self, url: str) -> Optional[AnimeDetail]:
        """Series detail including its episode list; ``None`` on failure."""
        if not url:
            return None
        try:
            soup, _ = self.client.soup(url)
            return self._parse_anime(soup)
        except Exception as e:
            logger.error("Get anime detail error (%s): %s", url, e)
            return None

    def _parse_anime(self, soup: BeautifulSoup) -> AnimeDetail:
        detail = AnimeDetail(
            title=select_text(soup, "h1.entry-title"),
            image=resolve_image(soup.select_one(".thumb img"), self.base_url),
            rating=first_text(soup, DETAIL_RATING_SELECTORS, UNRATED),
            synopsis=first_text(soup, SYNOPSIS_SELECTORS),
            status="Unknown",
        )

        for span in soup.select(".spe span"):
            label, value = split_label(span.get_text())
            if not label or not value:
                continue
            key = metadata_key(label)
            if key == "status":
                detail.status = value
            elif key not in RESERVED_KEYS:
                detail.metadata[key] = value

        detail.genres = [clean_text(a.get_text()) for a in soup.select(".genre-info a")]
        detail.episodes = [
            EpisodeRef(
                title=select_text(li, ".lchx a"),
                url=select_attr(li, ".lchx a", "href") or "",
                date=select_text(li, ".date"),
            )
            for li in soup.select(".lstepsiode ul li")
        ]
        detail.metadata["total_episodes"] = str(len(detail.episodes))
        return detail

    def get_episode(self, url: str) -> Optional[EpisodeDetail]:
        """Episode page with downloads and resolved stream servers.

        Servers that fail to resolve stay in the list with ``iframe=None``.
        ``None`` when the page itself cannot be fetched or parsed.
        """
        if not url:
            return None
        try:
            soup, _ = self.client.soup(url)
            episode = self._parse_episode(soup)
            servers = self._parse_servers(soup)
        except Exception as e:
            logger.error("Get episode error (%s): %s", url, e)
            return None

        episode.stream_servers = self.resolve_servers(servers)
        return episode

    def _parse_episode(self, soup: BeautifulSoup) -> EpisodeDetail:
        posted = select_text(soup, ".time-post")
        episode = EpisodeDetail(
            title=select_text(soup, "h1.entry-title"),
            release_date=clean_text(posted.replace("Posted by", "")),
            prev_episode=select_attr(soup, ".nvs:not(.rght):not(.nvsc) a[href]", "href"),
            next_episode=select_attr(soup, ".nvs.rght a[href]", "href"),
            all_episodes_link=select_attr(soup, ".nvs.nvsc a[href]", "href"),
        )

        for block in soup.select(".download-eps"):
            fmt = select_text(block, "p")
            for row in block.select("ul li"):
                resolution = select_text(row, "strong")
                for a in row.select("span a"):
                    episode.downloads.append(DownloadLink(
                        format=fmt,
                        resolution=resolution,
                        server=clean_text(a.get_text()),
                        url=a.get("href"),
                    ))
        return episode

    def _parse_servers(self, soup: BeautifulSoup) -> List[ServerDescriptor]:
        return [
            ServerDescriptor(
                name=select_text(div, "span"),
                post=div.get("data-post"),
                nume=div.get("data-nume"),
                type=div.get("data-type"),
            )
            for div in soup.select("#server ul li div")
        ]

    def resolve_servers(self, servers: Sequence[ServerDescriptor]) -> List[StreamServer]:
        """Resolve every server concurrently, keeping input order."""
        if not servers:
            return []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(servers))) as executor:
            return list(executor.map(self._resolve_server, servers))

    def _resolve_server(self, server: ServerDescriptor) -> StreamServer:
        try:
            response = self.client.post_ajax({"action": PLAYER_ACTION, **server.as_form()})
            iframe = BeautifulSoup(response.text, "lxml").select_one("iframe")
            src = clean_text(iframe.get("src")) if iframe else ""
            return StreamServer(server=server.name, iframe=src or None)
        except Exception as e:
            logger.warning("Stream server %r failed: %s", server.name, e)
            return StreamServer(server=server.name)

    def get_schedule(self) -> List[ScheduleDay]:
        """Weekly release schedule; days without entries are left out."""
        try:
            soup, _ = self.client.soup("jadwal-rilis/")
            schedule = []
            for day in SCHEDULE_DAYS:
                container = soup.select_one(f"#{day}")
                if container is None:
                    continue
                entries = [
                    ScheduleEntry(
                        title=select_text(item, ".name"),
                        url=select_attr(item, ".name", "href"),
                        time=select_text(item, ".time"),
                        image=resolve_image(item.select_one(".thumb img"), self.base_url),
                    )
                    for item in container.select(".items .item")
                ]
                if entries:
                    schedule.append(ScheduleDay(day=day.upper(), entries=entries))
            return schedule
        except Exception as e:
            logger.error("Get schedule error: %s", e)
            return []
