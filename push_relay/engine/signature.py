"""Recognise ``[id] url`` signature lines."""

from __future__ import annotations

import re
from dataclasses import dataclass

SIGNATURE_PATTERN = re.compile(r"\[(?P<id>[A-Za-z0-9_.\-]+)\]\s*(?P<url>.+)")
HTTP_SCHEMES = ("http://", "https://")


@dataclass(frozen=True, slots=True)
class ParsedSignature:
    id: str
    url: str

    @property
    def is_http(self) -> bool:
        return is_http_url(self.url)

    @property
    def target(self) -> str:
        """First token of the payload, the part handed to the capture tool."""

        return self.url.split(maxsplit=1)[0]


def parse_signature(line: str) -> ParsedSignature | None:
    """Return the bracketed id and payload of ``line``, or ``None`` if it has none."""

    match = SIGNATURE_PATTERN.match(line)
    if match is None:
        return None
    return ParsedSignature(id=match.group("id"), url=match.group("url"))


def is_http_url(value: str) -> bool:
    return value.startswith(HTTP_SCHEMES)


__all__ = ["HTTP_SCHEMES", "ParsedSignature", "SIGNATURE_PATTERN", "is_http_url", "parse_signature"]
