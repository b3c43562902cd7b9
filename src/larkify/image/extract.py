"""Find remote image references in markdown.

The markdown is parsed with mistune's AST renderer so that reference-style
images are resolved and image syntax inside code spans or fenced code is
ignored, matching what the remote converter turns into image blocks.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any
from urllib.parse import urlparse

import mistune

_parser = mistune.create_markdown(
    renderer="ast",
    plugins=["strikethrough", "table", "task_lists"],
)


def _walk(tokens: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    for token in tokens:
        yield token
        children = token.get("children")
        if isinstance(children, list):
            yield from _walk(children)


def extract_image_urls(markdown: str) -> list[str]:
    """Return the ``http``/``https`` image URLs of *markdown* in textual order.

    Local paths, data URIs and other schemes are skipped: they cannot be
    fetched and the converter does not create image blocks for them.

    Examples
    --------
    >>> extract_image_urls("![a](https://x.test/a.png) ![b](./b.png)")
    ['https://x.test/a.png']
    """
    if not markdown.strip():
        return []

    tokens = _parser(markdown)
    if isinstance(tokens, str):
        return []

    urls: list[str] = []
    for token in _walk(tokens):
        if token.get("type") != "image":
            continue
        url = ((token.get("attrs") or {}).get("url") or "").strip()
        if urlparse(url).scheme in ("http", "https"):
            urls.append(url)
    return urls


def file_name_for(url: str, index: int) -> str:
    """Derive an upload file name from the last segment of the URL path.

    Falls back to ``image_<index>.png`` when the path has no final segment.
    """
    segment = urlparse(url).path.rsplit("/", 1)[-1]
    return segment or f"image_{index}.png"
