"""W3C specification URLs: Technical Reports and CSS drafts servers."""

import re

from speccrawl.sources.base import SpecSource

_DATED_STATUS = re.compile(r"^[A-Z]+-(?P<shortname>.+)-[0-9]{8}$")


class W3CTRSource(SpecSource):
    """
    Published W3C specifications under https://www.w3.org/TR/.

    Two shapes exist:
    - latest version: /TR/<shortname>/
    - dated version: /TR/<year>/<STATUS>-<shortname>-<yyyymmdd>/
    """

    name = "w3c-tr"
    uses_registry = True
    hosts = ("www.w3.org", "w3.org")

    def matches(self, url: str) -> bool:
        segments = self.path_segments(url)
        return super().matches(url) and len(segments) >= 2 and segments[0] == "TR"

    def shortname(self, url: str) -> str:
        segments = self.path_segments(url)
        if segments[1].isdigit() and len(segments) >= 3:
            match = _DATED_STATUS.match(segments[2])
            if match:
                return match.group("shortname")
            return segments[2]
        return segments[1]

    def latest_guess(self, shortname: str) -> str:
        return f"https://www.w3.org/TR/{shortname}/"


class CSSDraftsSource(SpecSource):
    """Editor's drafts of the CSS WG, FXTF and Houdini task force."""

    name = "css-drafts"
    uses_registry = True
    hosts = ("drafts.csswg.org", "drafts.fxtf.org", "drafts.css-houdini.org")

    def matches(self, url: str) -> bool:
        return super().matches(url) and bool(self.path_segments(url))

    def shortname(self, url: str) -> str:
        return self.path_segments(url)[0]

    def latest_guess(self, shortname: str) -> str:
        return f"https://www.w3.org/TR/{shortname}/"

    def editors_draft(self, url: str) -> str:
        scheme_host = url.split("/", 3)[:3]
        return "/".join(scheme_host) + f"/{self.shortname(url)}/"
