"""Data models shared by the resolver, the crawler and the consolidator."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to the JSON shape used in report files."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GrammarEntry(BaseModel):
    """
    One CSS construct as it appears in a per-document CSS extract.

    Fields the merge logic does not look at (``initial``, ``appliesTo``, ...)
    are kept as extras and end up in the merged dataset untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    href: str | None = None
    value: str | None = None
    type: str | None = None
    for_: str | list[str] | None = Field(default=None, alias="for")
    descriptors: list["GrammarEntry"] | None = None
    values: list["GrammarEntry"] | None = None
    legacy_alias_of: str | None = Field(default=None, alias="legacyAliasOf")
    new_values: str | None = Field(default=None, alias="newValues")

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CSSExtract(BaseModel):
    """CSS definitions extracted from one document."""

    model_config = ConfigDict(extra="allow")

    atrules: list[GrammarEntry] = Field(default_factory=list)
    properties: list[GrammarEntry] = Field(default_factory=list)
    selectors: list[GrammarEntry] = Field(default_factory=list)
    values: list[GrammarEntry] = Field(default_factory=list)


class SpecDescriptor(CamelModel):
    """
    Identity and crawl outcome of one specification document.

    Identity fields are set by the resolver. The extract payload and ``error``
    are only ever filled in by the crawler.
    """

    url: str
    shortname: str | None = None
    series_shortname: str | None = None
    series_version: str | None = None
    title: str | None = None
    crawled_url: str | None = None
    latest: str | None = None
    ed_draft: str | None = None
    versions: list[str] = Field(default_factory=list)
    repository: str | None = None
    resolution_error: str | None = None
    error: str | None = None

    # Extract payload
    date: str | None = None
    links: list[str] | None = None
    references: dict[str, list[dict[str, Any]]] | None = None
    idl: dict[str, Any] | None = None
    css: CSSExtract | None = None


class CrawlStats(BaseModel):
    crawled: int = 0
    errors: int = 0


class CrawlOptions(CamelModel):
    """Options of one crawl run, recorded in the report."""

    max_concurrency: int = 10
    timeout_seconds: float = 60.0
    published_version: bool = False
    debug: bool = False
    fallback: str | None = None


class CrawlReport(CamelModel):
    """A crawl report: results sorted by URL plus run statistics."""

    type: str = "crawl"
    title: str = "Spec crawl"
    description: str | None = None
    date: str
    options: dict[str, Any] = Field(default_factory=dict)
    stats: CrawlStats = Field(default_factory=CrawlStats)
    results: list[SpecDescriptor] = Field(default_factory=list)
