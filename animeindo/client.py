from __future__ import annotations

import logging
import random
import time
from typing import Callable, Dict, Mapping, Optional, Tuple

import httpx
from bs4 import BeautifulSoup

from animeindo.config import SourceConfig

logger = logging.getLogger(__name__)

AJAX_PATH = "wp-admin/admin-ajax.php"

DESKTOP_PLATFORMS = {
    "Windows": "Windows NT 10.0; Win64; x64",
    "macOS": "Macintosh; Intel Mac OS X 10_15_7",
    "Linux": "X11; Linux x86_64",
}
MOBILE_PLATFORMS = {
    "Android": "Linux; Android 10; K",
}

ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
ACCEPT_AJAX = "application/json, text/javascript, */*; q=0.01"


def generate_headers(config: SourceConfig, rng: random.Random) -> Dict[str, str]:
    """Build one browser-like header set from the configured fingerprint pool."""
    version = rng.randint(config.min_browser_version, config.max_browser_version)
    device = rng.choice(config.devices)
    locale = rng.choice(config.locales)

    if device == "mobile":
        platform = rng.choice(sorted(MOBILE_PLATFORMS))
        user_agent = (
            f"Mozilla/5.0 ({MOBILE_PLATFORMS[platform]}) AppleWebKit/537.36 "
            f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Mobile Safari/537.36"
        )
    else:
        platform = rng.choice(sorted(DESKTOP_PLATFORMS))
        user_agent = (
            f"Mozilla/5.0 ({DESKTOP_PLATFORMS[platform]}) AppleWebKit/537.36 "
            f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Safari/537.36"
        )

    language = locale.split("-")[0]
    accept_language = f"{locale},{language};q=0.9"
    if language != "en":
        accept_language += ",en-US;q=0.8,en;q=0.7"

    return {
        "User-Agent": user_agent,
        "Accept": ACCEPT_HTML,
        "Accept-Language": accept_language,
        "sec-ch-ua": f'"Chromium";v="{version}", "Google Chrome";v="{version}", "Not=A?Brand";v="24"',
        "sec-ch-ua-mobile": "?1" if device == "mobile" else "?0",
        "sec-ch-ua-platform": f'"{platform}"',
    }
def build_session(config: SourceConfig) -> httpx.Client:
    """Pooled HTTP/2 client; redirects are followed like a browser would."""
    limits = httpx.Limits(
        max_connections=config.max_workers,
        max_keepalive_connections=config.max_workers,
    )
    return httpx.Client(
        http2=True,
        limits=limits,
        timeout=config.timeout,
        follow_redirects=True,
    )


class SourceClient:
    """One pooled HTTP/2 session bound to a single upstream origin.

    Adapters build a client once and reuse it for every call; pass an
    existing client to share or stub it.

    Transport failures (connect, read, timeout) are retried up to
    ``config.retries`` times with exponential backoff. HTTP error statuses
    are raised on the first response and never retried.
    """

    def __init__(
        self,
        config: SourceConfig,
        session: Optional[httpx.Client] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.base_url = config.origin
        self.rng = rng or random.Random()
        self.session = session or build_session(config)

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def headers(self) -> Dict[str, str]:
        return generate_headers(self.config, self.rng)

    def _send(self, send: Callable[[], httpx.Response], url: str) -> httpx.Response:
        attempts = max(0, self.config.retries) + 1
        for attempt in range(attempts):
            try:
                response = send()
                break
            except httpx.TransportError as e:
                if attempt >= attempts - 1:
                    raise
                delay = self.config.backoff_factor * (2 ** attempt)
                logger.debug("Retrying %s in %.1fs (%s)", url, delay, e)
                if delay > 0:
                    time.sleep(delay)
        response.raise_for_status()
        return response

    def get(self, path: str, params=None) -> httpx.Response:
        url = self.url_for(path)
        logger.debug("GET %s params=%s", url, params)
        return self._send(
            lambda: self.session.get(
                url, params=params, headers=self.headers(), timeout=self.config.timeout
            ),
            url,
        )

    def post_form(self, path: str, data: Mapping[str, str]) -> httpx.Response:
        url = self.url_for(path)
        headers = self.headers()
        headers.update({
            "Accept": ACCEPT_AJAX,
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "X-Requested-With": "XMLHttpRequest",
            "Origin": self.base_url,
            "Referer": f"{self.base_url}/",
        })
        logger.debug("POST %s action=%s", url, data.get("action"))
        return self._send(
            lambda: self.session.post(
                url, data=dict(data), headers=headers, timeout=self.config.timeout
            ),
            url,
        )

    def post_ajax(self, data: Mapping[str, str]) -> httpx.Response:
        return self.post_form(AJAX_PATH, data)

    def soup(self, path: str, params=None) -> Tuple[BeautifulSoup, httpx.Response]:
        response = self.get(path, params=params)
        return BeautifulSoup(response.content, "lxml"), response

    def redirected_home(self, response: httpx.Response) -> bool:
        """True when the site bounced the request back to its front page."""
        if not response.history:
            return False
        return str(response.url).rstrip("/") == self.base_url
