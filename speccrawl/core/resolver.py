"""Resolver that turns a raw list of URLs and shortnames into spec descriptors."""

import asyncio
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from speccrawl.config.settings import Settings, get_settings, load_spec_config
from speccrawl.core.models import SpecDescriptor
from speccrawl.core.registry import RepositoryIndex, W3CRegistry
from speccrawl.sources import get_source
from speccrawl.utils.logger import get_logger, log_event
from speccrawl.utils.specs import canonicalize_url, split_series, version_key

logger = get_logger(__name__)

RawSpec = str | dict[str, Any] | SpecDescriptor


class Resolver:
    """
    Resolver for spec descriptors.

    Workflow:
    1. Turn each raw entry into an initial descriptor (known spec, URL or file)
    2. Derive shortname and series identity from the URL shape
    3. Enrich with the W3C version history where the registry knows the spec
    4. Enrich all descriptors with repository URLs in one batched lookup

    Registry failures never abort resolution. A failed version-history lookup
    leaves a best-effort guess and a ``resolution_error`` on the descriptor; a
    failed repository lookup is logged and ignored.
    """

    def __init__(
        self,
        registry: W3CRegistry | None = None,
        repositories: RepositoryIndex | None = None,
        known_specs: list[dict[str, Any]] | None = None,
        equivalents: dict[str, list[str]] | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize resolver.

        Args:
            registry: Version history client (defaults to the W3C API)
            repositories: Repository index client
            known_specs: Known spec entries (defaults to specs.yaml)
            equivalents: Canonical URL to equivalent URLs (defaults to specs.yaml)
            settings: Settings instance
        """
        self.settings = settings or get_settings()
        self.registry = registry or W3CRegistry(self.settings)
        self.repositories = repositories or RepositoryIndex(self.settings)

        if known_specs is None or equivalents is None:
            config = load_spec_config()
            if known_specs is None:
                known_specs = config.get("specs", [])
            if equivalents is None:
                equivalents = config.get("equivalents", {})

        self.known_specs = [SpecDescriptor.model_validate(s) for s in known_specs]
        self.equivalents = equivalents

    async def resolve(self, raw_list: list[RawSpec]) -> list[SpecDescriptor]:
        """
        Resolve a raw spec list.

        Args:
            raw_list: URLs, shortnames, series shortnames, paths to local HTML
                files, or structured descriptors

        Returns:
            Enriched descriptors, in input order

        Raises:
            ValueError: If an entry cannot be interpreted at all
        """
        descriptors = [self.prepare(entry) for entry in raw_list]
        logger.info(f"Resolving {len(descriptors)} specs")

        descriptors = list(await asyncio.gather(*[self._enrich(d) for d in descriptors]))
        await self._add_repositories(descriptors)

        degraded = sum(1 for d in descriptors if d.resolution_error)
        logger.info(f"Resolved {len(descriptors)} specs ({degraded} with registry errors)")
        return descriptors

    def prepare(self, entry: RawSpec) -> SpecDescriptor:
        """
        Turn one raw entry into an initial descriptor with identity fields.

        Args:
            entry: Raw entry

        Returns:
            Descriptor with url, shortname and series identity set
        """
        if isinstance(entry, SpecDescriptor):
            descriptor = entry.model_copy(deep=True)
        elif isinstance(entry, dict):
            descriptor = SpecDescriptor.model_validate(entry)
        else:
            descriptor = self._lookup_known(entry) or SpecDescriptor(url=self._to_url(entry))

        source = get_source(descriptor.url)
        if not descriptor.shortname:
            descriptor.shortname = source.shortname(descriptor.url)
        if not descriptor.series_shortname:
            series, version = split_series(descriptor.shortname)
            descriptor.series_shortname = series
            if descriptor.series_version is None:
                descriptor.series_version = version
        if not descriptor.ed_draft:
            descriptor.ed_draft = source.editors_draft(descriptor.url)

        return descriptor

    def _lookup_known(self, entry: str) -> SpecDescriptor | None:
        for spec in self.known_specs:
            if entry in (spec.url, spec.shortname):
                return spec.model_copy(deep=True)

        # Series shortname: pick the most recent level we know about
        in_series = [s for s in self.known_specs if s.series_shortname == entry]
        if in_series:
            best = max(in_series, key=lambda s: version_key(s.series_version))
            return best.model_copy(deep=True)
        return None

    @staticmethod
    def _to_url(entry: str) -> str:
        parsed = urlparse(entry)
        if parsed.scheme and (parsed.netloc or parsed.scheme == "file"):
            return entry
        if entry.endswith(".html"):
            return Path(entry).resolve().as_uri()
        raise ValueError(
            f'Spec ID "{entry}" can neither be interpreted as a URL, a valid '
            "shortname or a relative path to an HTML file"
        )

    async def _enrich(self, descriptor: SpecDescriptor) -> SpecDescriptor:
        source = get_source(descriptor.url)

        if source.uses_registry and descriptor.shortname:
            result = await self.registry.version_history(descriptor.shortname)
            if result.ok:
                history = result.value
                descriptor.title = descriptor.title or history.title
                descriptor.latest = descriptor.latest or history.latest
                descriptor.ed_draft = history.ed_draft or descriptor.ed_draft
                versions = history.versions
            else:
                log_event(
                    logger,
                    "registry_error",
                    f"Registry lookup failed for {descriptor.shortname}: {result.message}",
                    url=descriptor.url,
                    failure=result.failure.value,
                )
                descriptor.resolution_error = f"{result.failure.value}: {result.message}"
                descriptor.latest = descriptor.latest or source.latest_guess(descriptor.shortname)
                versions = []
        else:
            versions = []
            if not descriptor.latest:
                descriptor.latest = source.latest_guess(descriptor.shortname)

        descriptor.versions = self._known_versions(descriptor, versions)
        if not descriptor.crawled_url:
            descriptor.crawled_url = descriptor.ed_draft or descriptor.url
        return descriptor

    def _known_versions(self, descriptor: SpecDescriptor, extra: list[str]) -> list[str]:
        versions = set(descriptor.versions)
        versions.add(descriptor.url)
        for url in (descriptor.latest, descriptor.ed_draft):
            if url:
                versions.add(url)
        versions.update(extra)
        versions.update(self.equivalents.get(canonicalize_url(descriptor.url), []))
        return sorted(versions)

    async def _add_repositories(self, descriptors: list[SpecDescriptor]) -> None:
        if not descriptors:
            return

        try:
            result = await self.repositories.lookup([d.url for d in descriptors])
        except Exception as e:
            logger.warning(f"Repository lookup failed, continuing without: {e}")
            return

        if not result.ok:
            logger.warning(f"Repository lookup failed, continuing without: {result.message}")
            return

        for descriptor in descriptors:
            repository = result.value.get(descriptor.url)
            if repository and not descriptor.repository:
                descriptor.repository = repository
