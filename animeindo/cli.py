"""Command-line entry point: run one scraper operation and print JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Callable, Dict, Sequence

from animeindo.config import OTAKUDESU, SAMEHADAKU
from animeindo.models import to_dict
from animeindo.otakudesu import OtakudesuScraper
from animeindo.samehadaku import SamehadakuScraper

logger = logging.getLogger(__name__)

Operation = Callable[[object, argparse.Namespace], object]

OPERATIONS: Dict[str, Dict[str, Operation]] = {
    "otakudesu": {
        "search": lambda s, a: s.search(a.query, a.page, genres=a.genre),
        "home": lambda s, a: s.get_home_page(a.page),
        "anime": lambda s, a: s.get_anime(a.target),
        "episodes": lambda s, a: s.get_episodes(a.target),
        "downloads": lambda s, a: s.get_download_link(a.target),
        "mirrors": lambda s, a: s.get_data_content(a.target),
        "video": lambda s, a: s.get_videos(a.target),
        "genres": lambda s, a: s.get_genre_list(),
    },
    "samehadaku": {
        "top10": lambda s, a: s.get_top_ten_week(),
        "latest": lambda s, a: s.get_anime_list(a.page),
        "search": lambda s, a: s.search(
            a.query, a.page, status=a.status, type_=a.type, order=a.order, genres=a.genre
        ),
        "anime": lambda s, a: s.get_anime(a.target),
        "episode": lambda s, a: s.get_episode(a.target),
        "schedule": lambda s, a: s.get_schedule(),
    },
}

TARGETED = {"anime", "episodes", "downloads", "mirrors", "video", "episode"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="animeindo",
        description="Scrape otakudesu or samehadaku and print the normalized records as JSON.",
    )
    sources = parser.add_subparsers(dest="source", required=True)
    for source, operations in OPERATIONS.items():
        sub = sources.add_parser(source, help=f"Query {source}")
        sub.add_argument("operation", choices=sorted(operations))
        sub.add_argument(
            "target",
            nargs="?",
            help="Page URL, or the mirror data-content token for 'video'",
        )
        sub.add_argument("--query", "-q", default="", help="Search keywords")
        sub.add_argument("--page", type=int, default=1, help="Listing page number")
        sub.add_argument(
            "--genre",
            action="append",
            default=[],
            help="Genre filter; repeat for several (otakudesu uses the first only)",
        )
        if source == "samehadaku":
            sub.add_argument("--status", default="", help="Status filter for search")
            sub.add_argument("--type", default="", help="Type filter for search")
            sub.add_argument("--order", default="title", help="Sort order for search")
        sub.add_argument("--base-url", default=None, help="Override the site origin")
        sub.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds")
        sub.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def build_scraper(args: argparse.Namespace):
    config = OTAKUDESU if args.source == "otakudesu" else SAMEHADAKU
    if args.base_url:
        config = replace(config, base_url=args.base_url)
    if args.timeout is not None:
        config = replace(config, timeout=args.timeout)
    if args.source == "otakudesu":
        return OtakudesuScraper(config=config)
    return SamehadakuScraper(config=config)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.operation in TARGETED and not args.target:
        parser.error(f"'{args.operation}' needs a target URL or token")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    scraper = build_scraper(args)
    result = OPERATIONS[args.source][args.operation](scraper, args)
    if result is None:
        logger.error("%s %s returned nothing", args.source, args.operation)
        return 1

    json.dump(to_dict(result), sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
