"""Base class for well-known specification URL shapes."""

from abc import ABC, abstractmethod
from urllib.parse import urlparse

from speccrawl.utils.specs import sanitize_shortname


class SpecSource(ABC):
    """
    Abstract base class for a family of specification URLs.

    Each source knows one URL shape (W3C TR, CSS drafts, WHATWG, ...) and
    implements:
    - matches(): Whether a URL belongs to the family
    - shortname(): How to derive the spec shortname from such a URL

    Sources may also offer best-effort guesses for the latest published
    version and the editor's draft, used when no registry can tell.
    """

    name: str = "base"

    # Whether the W3C API knows about specs of this family
    uses_registry: bool = False

    # Hostnames handled by the source (empty = match() is overridden)
    hosts: tuple[str, ...] = ()

    def matches(self, url: str) -> bool:
        """
        Determine if a URL belongs to this source.

        Args:
            url: Absolute URL

        Returns:
            True if the source can derive a shortname from the URL
        """
        return urlparse(url).netloc.lower() in self.hosts

    @abstractmethod
    def shortname(self, url: str) -> str:
        """
        Derive the spec shortname from a URL.

        Args:
            url: Absolute URL accepted by matches()

        Returns:
            Shortname
        """

    def latest_guess(self, shortname: str) -> str | None:
        """Best-effort URL of the latest published version."""
        return None

    def editors_draft(self, url: str) -> str | None:
        """Best-effort URL of the editor's draft for a URL of this source."""
        return None

    @staticmethod
    def path_segments(url: str) -> list[str]:
        """Non-empty path segments of a URL, file names included."""
        return [segment for segment in urlparse(url).path.split("/") if segment]


class FallbackSource(SpecSource):
    """Catch-all for unknown URL shapes: the shortname is the sanitized URL."""

    name = "fallback"

    def matches(self, url: str) -> bool:
        return True

    def shortname(self, url: str) -> str:
        return sanitize_shortname(url)
