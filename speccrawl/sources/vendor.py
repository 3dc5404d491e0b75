"""Specifications from vendor and standards-body registries."""

import re

from speccrawl.sources.base import SpecSource


class TC39Source(SpecSource):
    """Ecma TC39 specs and proposals at https://tc39.es/<shortname>/."""

    name = "tc39"
    hosts = ("tc39.es",)

    def matches(self, url: str) -> bool:
        return super().matches(url) and bool(self.path_segments(url))

    def shortname(self, url: str) -> str:
        return self.path_segments(url)[0]

    def editors_draft(self, url: str) -> str:
        return f"https://tc39.es/{self.shortname(url)}/"


class KhronosSource(SpecSource):
    """
    Khronos registry specs, e.g. https://registry.khronos.org/webgl/specs/latest/1.0/.

    The version folder, when present, is folded into the shortname
    (webgl + 1.0 gives webgl1, 2.0 gives webgl2).
    """

    name = "khronos"
    hosts = ("registry.khronos.org", "www.khronos.org")

    def matches(self, url: str) -> bool:
        segments = self.path_segments(url)
        if not super().matches(url) or not segments:
            return False
        if segments[0] == "registry":
            return len(segments) >= 2
        return True

    def shortname(self, url: str) -> str:
        segments = self.path_segments(url)
        if segments[0] == "registry":
            segments = segments[1:]
        name = segments[0].lower()
        for segment in segments[1:]:
            match = re.fullmatch(r"(\d+)\.0", segment)
            if match:
                return f"{name}{match.group(1)}"
        return name
