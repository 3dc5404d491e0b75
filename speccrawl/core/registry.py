"""Clients for the external registries that enrich spec descriptors."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

import httpx

from speccrawl.config.settings import Settings, get_settings
from speccrawl.utils.fetch import fetch_json
from speccrawl.utils.logger import get_logger
from speccrawl.utils.specs import canonicalize_url

logger = get_logger(__name__)

T = TypeVar("T")


class LookupFailure(str, Enum):
    """Why a registry lookup did not produce a value."""

    UNREACHABLE = "unreachable"
    NOT_FOUND = "not-found"
    MALFORMED = "malformed"


@dataclass
class LookupResult(Generic[T]):
    """Outcome of a registry lookup: either a value or a failure kind."""

    value: T | None = None
    failure: LookupFailure | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "LookupResult[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, failure: LookupFailure, message: str) -> "LookupResult[T]":
        return cls(failure=failure, message=message)


@dataclass
class VersionHistory:
    """What the W3C API knows about a spec."""

    title: str | None = None
    latest: str | None = None
    ed_draft: str | None = None
    dated_url: str | None = None
    dated_status: str | None = None
    versions: list[str] = field(default_factory=list)


def _classify(error: Exception) -> LookupResult:
    if isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 404:
        return LookupResult.failed(LookupFailure.NOT_FOUND, str(error))
    if isinstance(error, httpx.HTTPError):
        return LookupResult.failed(LookupFailure.UNREACHABLE, str(error))
    return LookupResult.failed(LookupFailure.MALFORMED, f"{type(error).__name__}: {error}")


class W3CRegistry:
    """
    Version history lookups against the W3C API.

    The API is queried in two steps: the specification resource, then the
    version history it links to (embedded, so that one call returns all
    published versions).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the registry client.

        Args:
            settings: Settings to read API URL, key and HTTP options from
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.settings = settings or get_settings()
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        if self.settings.w3c_api_key:
            headers["Authorization"] = f'W3C-API apikey="{self.settings.w3c_api_key}"'
        return httpx.AsyncClient(
            headers=headers,
            timeout=self.settings.timeout_seconds,
            follow_redirects=True,
            transport=self.transport,
        )

    async def version_history(self, shortname: str) -> LookupResult[VersionHistory]:
        """
        Look up the version history of a spec.

        Args:
            shortname: W3C shortname

        Returns:
            LookupResult wrapping a VersionHistory
        """
        fetch_options = {
            "max_retries": self.settings.max_retries,
            "backoff": self.settings.retry_backoff,
        }
        base = self.settings.w3c_api_url.rstrip("/")

        try:
            async with self._client() as client:
                spec = await fetch_json(
                    f"{base}/specifications/{shortname}", client=client, **fetch_options
                )
                history_url = spec["_links"]["version-history"]["href"]
                history = await fetch_json(
                    f"{history_url}?embed=1", client=client, **fetch_options
                )
                versions = history["_embedded"]["version-history"]
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"W3C API lookup failed for {shortname}: {e}")
            return _classify(e)

        if not versions:
            return LookupResult.failed(
                LookupFailure.MALFORMED, f"Empty version history for {shortname}"
            )

        return LookupResult.success(self._parse_history(versions))

    @staticmethod
    def _parse_history(versions: list[dict[str, Any]]) -> VersionHistory:
        latest = versions[0]
        urls = [canonicalize_url(v["uri"]) for v in versions if v.get("uri")]
        urls += [
            canonicalize_url(v["editor-draft"]) for v in versions if v.get("editor-draft")
        ]
        return VersionHistory(
            title=latest.get("title"),
            latest=latest.get("shortlink"),
            ed_draft=latest.get("editor-draft"),
            dated_url=latest.get("uri"),
            dated_status=latest.get("status"),
            versions=urls,
        )


class RepositoryIndex:
    """
    Batched repository lookups.

    The index is a JSON list of spec entries shaped like browser-specs
    (``{"url": ..., "nightly": {"url": ..., "repository": ...}}``). It is
    fetched once per lookup and matched against the requested URLs.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

    async def lookup(self, urls: list[str]) -> LookupResult[dict[str, str]]:
        """
        Map spec URLs to repository URLs.

        URLs the index does not know are left out of the mapping.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.timeout_seconds,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                index = await fetch_json(
                    self.settings.repository_index_url,
                    client=client,
                    max_retries=self.settings.max_retries,
                    backoff=self.settings.retry_backoff,
                )
        except (httpx.HTTPError, ValueError) as e:
            return _classify(e)

        if not isinstance(index, list):
            return LookupResult.failed(LookupFailure.MALFORMED, "Repository index is not a list")

        known: dict[str, str] = {}
        for entry in index:
            if not isinstance(entry, dict):
                continue
            nightly = entry.get("nightly") or {}
            repository = nightly.get("repository")
            if not repository:
                continue
            for url in (entry.get("url"), nightly.get("url")):
                if url:
                    known[canonicalize_url(url)] = repository

        mapping = {}
        for url in urls:
            repository = known.get(canonicalize_url(url))
            if repository:
                mapping[url] = repository
        return LookupResult.success(mapping)
