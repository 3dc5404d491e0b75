"""Async HTTP helpers: httpx with retries, Playwright for script-generated documents."""

import asyncio
import re
from typing import Any

import httpx
from playwright.async_api import async_playwright

from speccrawl.utils.logger import get_logger

logger = get_logger(__name__)

USER_AGENT = "speccrawl/0.1 (+https://github.com/w3c/browser-specs)"

# ReSpec documents ship their source markup and build the rest in the browser
_NEEDS_RENDERING = re.compile(r"<script[^>]+src=[\"'][^\"']*respec[^\"']*[\"']", re.IGNORECASE)
_ALREADY_RENDERED = re.compile(r"<[^>]+class=[\"'][^\"']*\brespec-done\b", re.IGNORECASE)


def _retryable(error: httpx.HTTPError) -> bool:
    """Network errors, 5xx and 429 are worth another attempt; other 4xx are not."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status >= 500 or status == 429
    return isinstance(error, httpx.RequestError)


async def fetch_with_httpx(
    url: str,
    timeout: int = 30,
    max_retries: int = 3,
    backoff: float = 2.0,
    client: httpx.AsyncClient | None = None,
) -> httpx.Response:
    """
    GET a URL, retrying transient failures with exponential backoff.

    Args:
        url: URL to fetch
        timeout: Request timeout in seconds
        max_retries: Maximum attempts
        backoff: Base of the exponential backoff between attempts
        client: Optional client to reuse (its own timeout then applies)

    Returns:
        The successful response

    Raises:
        httpx.HTTPError: The last error, or the first non-retryable one
    """
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        try:
            if client is not None:
                response = await client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=timeout,
                    follow_redirects=True,
                    headers={"User-Agent": USER_AGENT},
                ) as own:
                    response = await own.get(url)
            response.raise_for_status()
            return response

        except httpx.HTTPError as e:
            if not _retryable(e) or attempt == attempts:
                logger.debug(f"Giving up on {url} after {attempt} attempt(s): {e}")
                raise
            logger.debug(f"Attempt {attempt} for {url} failed ({e}), retrying")

        await asyncio.sleep(backoff**attempt)

    raise AssertionError("unreachable")


async def fetch_json(
    url: str,
    client: httpx.AsyncClient | None = None,
    **kwargs: Any,
) -> Any:
    """
    Fetch a URL and decode its JSON body.

    Raises:
        httpx.HTTPError: If the request fails
        ValueError: If the body is not valid JSON
    """
    response = await fetch_with_httpx(url, client=client, **kwargs)
    return response.json()


async def fetch_with_playwright(url: str, timeout: int = 30) -> str:
    """
    Load a document in headless Chromium and return the markup once scripts ran.

    Args:
        url: URL to load
        timeout: Page load timeout in seconds

    Returns:
        Rendered HTML
    """
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        try:
            page = await browser.new_page(user_agent=USER_AGENT)
            await page.goto(url, timeout=timeout * 1000, wait_until="networkidle")
            return await page.content()
        finally:
            await browser.close()


def needs_rendering(html: str) -> bool:
    """Whether a document still has to go through ReSpec before extraction."""
    return bool(_NEEDS_RENDERING.search(html)) and not _ALREADY_RENDERED.search(html)


async def fetch_url(
    url: str,
    timeout: int = 30,
    max_retries: int = 3,
    use_playwright: bool = False,
) -> str:
    """
    Fetch a spec document.

    Plain HTTP is tried first. The document is loaded in a browser instead when
    ``use_playwright`` is set, when the server refuses plain clients (403), or
    when the markup turns out to be unprocessed ReSpec source.

    Args:
        url: URL to fetch
        timeout: Request timeout in seconds
        max_retries: Max retry attempts for httpx
        use_playwright: Always use the browser

    Returns:
        HTML content
    """
    if use_playwright:
        return await fetch_with_playwright(url, timeout)

    try:
        response = await fetch_with_httpx(url, timeout, max_retries)
    except httpx.HTTPStatusError as e:
        if e.response.status_code != 403:
            raise
        logger.info(f"{url} refused plain HTTP, loading it in a browser")
        return await fetch_with_playwright(url, timeout)

    if needs_rendering(response.text):
        logger.info(f"{url} is ReSpec source, rendering it in a browser")
        return await fetch_with_playwright(url, timeout)
    return response.text
