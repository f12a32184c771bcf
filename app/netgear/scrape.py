"""
Implementation of the login and scrape functions
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, nullcontext

import structlog
from aiohttp import ClientError, ClientSession, CookieJar
from bs4 import BeautifulSoup
from err.exceptions import ModemNotOkError, TransportError
from netgear import parse
from netgear.metrics import ModemMetrics
from util.const import (
    LOGIN_ACTION_PATH,
    LOGIN_PAGE_PATH,
    REQUEST_HEADERS,
    STATUS_PAGE_PATH,
)

log = structlog.get_logger(__name__)


def new_modem_session() -> ClientSession:
    """A fresh client with an empty cookie jar."""
    return ClientSession(
        headers=REQUEST_HEADERS,
        # unsafe=True: tell aiohttp to allow cookies on IP addresses
        cookie_jar=CookieJar(unsafe=True),
    )


@asynccontextmanager
async def authenticate(
    base_url: str,
    username: str,
    password: str,
    metrics: ModemMetrics | None = None,
) -> AsyncIterator[ClientSession]:
    """Log in and hand back a session carrying the modem's session cookie.

    Nothing about the session is kept once the block exits; every poll gets a fresh login.
    Usage:

        async with authenticate(url, user, pw) as cs:
            records = await fetch_and_parse(cs, url)
    """
    async with new_modem_session() as cs:
        await do_login(cs, base_url, username, password, metrics)
        yield cs


def modem_url(base_url: str, path: str) -> str:
    """Paths hang off the base URL as-is, so a modem UI behind a prefix keeps its prefix."""
    return f"{base_url.rstrip('/')}{path}"


async def do_login(
    cs: ClientSession,
    base_url: str,
    username: str,
    password: str,
    metrics: ModemMetrics | None = None,
) -> str:
    """
    Two step login: pull the webToken off the login form, then post it back with the credentials.

    Returns the token that was submitted.
    The modem doesn't tell us if the login worked in any useful way. A bad password only shows up later
        when the status page comes back without the channel table.
    """
    # Some firmware answers the login page with an error status but still renders the form, so don't insist on a 200 here
    login_page = await _get_page(
        cs, modem_url(base_url, LOGIN_PAGE_PATH), "login_page", metrics, require_ok=False
    )
    web_token = parse.find_web_token(BeautifulSoup(login_page, "html.parser"))
    log.debug("webToken", token=web_token)

    form = {
        "webToken": web_token,
        "loginUsername": username,
        "loginPassword": password,
    }
    try:
        with _timed(metrics, "login"):
            async with cs.post(modem_url(base_url, LOGIN_ACTION_PATH), data=form) as resp:
                _count(metrics, resp.status, "login")
                # Drain so the connection can go back into the pool
                await resp.read()
                log.debug("Login form posted", status=resp.status)
    except (ClientError, asyncio.TimeoutError) as e:
        raise TransportError(f"Failed to post login form: {e}") from e

    log.debug("Cookie jar", count=len(cs.cookie_jar))
    return web_token


async def fetch_and_parse(
    cs: ClientSession, base_url: str, metrics: ModemMetrics | None = None
) -> list[parse.ChannelRecord]:
    """Grab the status page with an already logged-in session and parse out the channel rows."""
    log.info("Attempting to get channel status data...")
    raw_status = await _get_page(
        cs, modem_url(base_url, STATUS_PAGE_PATH), "status", metrics
    )
    records = parse.parse_channel_table(BeautifulSoup(raw_status, "html.parser"))
    log.info("Parsed channel status", count=len(records))
    return records


async def _get_page(
    cs: ClientSession,
    url: str,
    scrape_target: str,
    metrics: ModemMetrics | None,
    require_ok: bool = True,
) -> str:
    try:
        with _timed(metrics, scrape_target):
            async with cs.get(url) as resp:
                _count(metrics, resp.status, scrape_target)
                if require_ok and resp.status != 200:
                    raise ModemNotOkError(
                        f"Failed to get {url}. Status={resp.status}.",
                        status_code=resp.status,
                    )
                return await resp.text(errors="replace")
    except (ClientError, asyncio.TimeoutError) as e:
        raise TransportError(f"Failed to get {url}: {e}") from e


def _timed(metrics: ModemMetrics | None, scrape_target: str):
    if metrics is None:
        return nullcontext()
    return metrics.s_meta_request_time.labels(scrape_target).time()


def _count(metrics: ModemMetrics | None, status: int, scrape_target: str) -> None:
    if metrics is not None:
        metrics.c_meta_scrape_result.labels(status, scrape_target).inc()
