"""Default inline markup codec for bold, italics, highlights, strikethrough and links."""

import re
from typing import cast

from outline_sync.models.document import Annotation, AnnotationType

# Alternatives are tried left to right at each position; the first match wins.
_INLINE_RE = re.compile(
    r"\*\*(?P<bold>.+?)\*\*"
    r"|\^\^(?P<highlighting>.+?)\^\^"
    r"|~~(?P<strikethrough>.+?)~~"
    r"|(?<![\w_])_(?P<italics>[^_\n]+?)_(?![\w_])"
    r"|\[(?P<link>[^\[\]\n]+?)\]\((?P<href>[^()\s]*)\)",
    re.DOTALL,
)


class MarkdownInlineCodec:
    """Decode one level of inline markup into plain text and annotations.

    Nested markup is not decoded: the inner delimiters stay part of the plain text.
    The delimiter table matches `render_annotations`, so decoding and re-rendering
    a block without nesting reproduces its raw text.
    """

    def decode(self, raw: str) -> tuple[str, list[Annotation]]:
        parts: list[str] = []
        annotations: list[Annotation] = []
        length = 0
        last = 0
        for match in _INLINE_RE.finditer(raw):
            before = raw[last : match.start()]
            parts.append(before)
            length += len(before)

            # Every alternative has a named group, so lastgroup is always set.
            kind = cast(str, match.lastgroup)
            if kind == "href":
                kind = "link"
            inner = match.group(kind)
            attributes = {"href": match.group("href")} if kind == AnnotationType.LINK else {}
            annotations.append(Annotation(kind, length, length + len(inner), attributes))
            parts.append(inner)
            length += len(inner)
            last = match.end()
        parts.append(raw[last:])
        return "".join(parts), annotations
