from __future__ import annotations

"""Pull ``#path`` context tags and URLs out of a free-text prompt."""

import re
from typing import Iterable, List

from ..domain.errors import NoUrlError


URL_PATTERN = re.compile(
    r"https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b[-a-zA-Z0-9()@:%_+.~#?&/=]*"
)
TAG_PATTERN = re.compile(r"#[\w/.\-]+")


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def extract_urls(prompt: str) -> List[str]:
    return _unique(m.group(0) for m in URL_PATTERN.finditer(prompt or ""))


def extract_tags(prompt: str) -> List[str]:
    """Return ``#tags`` in order of appearance.

    URL spans are blanked first so a fragment such as ``page#intro`` is not
    mistaken for a context tag.
    """
    text = prompt or ""
    masked = URL_PATTERN.sub(lambda m: " " * len(m.group(0)), text)
    return _unique(m.group(0) for m in TAG_PATTERN.finditer(masked))


def tag_paths(tags: Iterable[str]) -> List[str]:
    return [t[1:] if t.startswith("#") else t for t in tags]


def require_urls(urls: List[str]) -> List[str]:
    if not urls:
        raise NoUrlError()
    return urls
