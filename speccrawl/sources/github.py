"""Specifications published through GitHub Pages."""

from urllib.parse import urlparse

from speccrawl.sources.base import SpecSource


class GitHubPagesSource(SpecSource):
    """
    Editor's drafts hosted at https://<org>.github.io/<project>/.

    Some projects host several specs in subfolders (e.g. woff/woff2/). The
    deepest folder names the spec.
    """

    name = "github-pages"

    def matches(self, url: str) -> bool:
        host = urlparse(url).netloc.lower()
        return host.endswith(".github.io") and bool(self._folders(url))

    def shortname(self, url: str) -> str:
        return self._folders(url)[-1]

    def editors_draft(self, url: str) -> str:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}/{'/'.join(self._folders(url))}/"

    def _folders(self, url: str) -> list[str]:
        segments = self.path_segments(url)
        if segments and "." in segments[-1]:
            segments = segments[:-1]
        return segments
