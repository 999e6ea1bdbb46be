import json
from unittest.mock import patch

import pytest

from animeindo.cli import build_parser, build_scraper, main
from animeindo.models import Genre
from animeindo.otakudesu import OtakudesuScraper
from animeindo.samehadaku import SamehadakuScraper


def test_main_prints_json(capsys):
    genres = [Genre(name="Action", slug="action", url="https://otakudesu.best/genres/action/")]
    with patch.object(OtakudesuScraper, "get_genre_list", return_value=genres):
        assert main(["otakudesu", "genres"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out == [{"name": "Action", "slug": "action", "url": "https://otakudesu.best/genres/action/"}]


def test_main_passes_search_filters():
    with patch.object(SamehadakuScraper, "search", return_value=[]) as mock_search:
        assert main([
            "samehadaku", "search", "-q", "frieren", "--page", "2",
            "--genre", "fantasy", "--genre", "drama", "--status", "Completed",
        ]) == 0

    mock_search.assert_called_once_with(
        "frieren", 2, status="Completed", type_="", order="title", genres=["fantasy", "drama"]
    )


def test_main_returns_1_when_nothing_found():
    with patch.object(SamehadakuScraper, "get_anime", return_value=None):
        assert main(["samehadaku", "anime", "https://v1.samehadaku.how/anime/x/"]) == 1


def test_targeted_operation_requires_target():
    with pytest.raises(SystemExit):
        main(["otakudesu", "video"])


def test_unknown_operation_is_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["samehadaku", "genres"])


def test_build_scraper_applies_overrides():
    args = build_parser().parse_args(
        ["otakudesu", "home", "--base-url", "https://otakudesu.example/", "--timeout", "5"]
    )
    scraper = build_scraper(args)
    assert isinstance(scraper, OtakudesuScraper)
    assert scraper.base_url == "https://otakudesu.example"
    assert scraper.client.config.timeout == 5.0

    args = build_parser().parse_args(["samehadaku", "schedule"])
    scraper = build_scraper(args)
    assert isinstance(scraper, SamehadakuScraper)
    assert scraper.base_url == "https://v1.samehadaku.how"
