"""WHATWG living standards: one subdomain per spec."""

from urllib.parse import urlparse

from speccrawl.sources.base import SpecSource


class WhatwgSource(SpecSource):
    """
    WHATWG specs live at https://<shortname>.spec.whatwg.org/.

    Multipage specs (HTML) have subpages under the same host; all of them map
    to the same shortname. The living standard is both the latest version and
    the editor's draft.
    """

    name = "whatwg"

    def matches(self, url: str) -> bool:
        host = urlparse(url).netloc.lower()
        return host.endswith(".spec.whatwg.org")

    def shortname(self, url: str) -> str:
        return urlparse(url).netloc.lower().split(".")[0]

    def latest_guess(self, shortname: str) -> str:
        return f"https://{shortname}.spec.whatwg.org/"

    def editors_draft(self, url: str) -> str:
        return self.latest_guess(self.shortname(url))
