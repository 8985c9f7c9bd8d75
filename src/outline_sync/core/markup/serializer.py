"""Render plain text plus inline annotations back into raw block markup."""

from collections.abc import Iterable

from outline_sync.models.document import Annotation, AnnotationType

# (prefix, suffix) per annotation type. Links take their suffix from `href`.
DELIMITERS: dict[str, tuple[str, str]] = {
    AnnotationType.BOLD: ("**", "**"),
    AnnotationType.HIGHLIGHTING: ("^^", "^^"),
    AnnotationType.ITALICS: ("_", "_"),
    AnnotationType.STRIKETHROUGH: ("~~", "~~"),
}


def delimiters_for(annotation: Annotation) -> tuple[str, str]:
    """Return the (prefix, suffix) pair wrapped around an annotation; unknown types get none."""
    if annotation.type == AnnotationType.LINK:
        return "[", f"]({annotation.attributes.get('href', '')})"
    return DELIMITERS.get(annotation.type, ("", ""))


def annotations_for_block(block: Annotation, annotations: Iterable[Annotation]) -> list[Annotation]:
    """Copy the annotations with offsets made relative to the block's start."""
    return [a.shifted(-block.start) for a in annotations]


def render_annotations(text: str, annotations: Iterable[Annotation]) -> str:
    """Wrap annotated ranges of `text` in their markup delimiters.

    Annotations are applied in the given order. After each wrap, the offsets of the
    annotations not applied yet move right by the inserted delimiters. The end bound is
    compared strictly against the wrapped range's end, so a range ending exactly where
    the wrapped one ends closes before its suffix.

    Args:
        text: Plain text of one block.
        annotations: Block-relative annotations. They are not modified.

    Returns:
        Raw markup text.
    """
    pending = [Annotation(a.type, a.start, a.end, dict(a.attributes)) for a in annotations]
    for anno in pending:
        if not 0 <= anno.start <= anno.end <= len(text):
            msg = f"Annotation {anno.type!r} [{anno.start}, {anno.end}) outside text of length {len(text)}"
            raise ValueError(msg)

    result = text
    for index, current in enumerate(pending):
        prefix, suffix = delimiters_for(current)
        for later in pending[index + 1 :]:
            later.start += (len(prefix) if later.start >= current.start else 0) + (
                len(suffix) if later.start >= current.end else 0
            )
            later.end += (len(prefix) if later.end >= current.start else 0) + (
                len(suffix) if later.end > current.end else 0
            )
        result = (
            result[: current.start]
            + prefix
            + result[current.start : current.end]
            + suffix
            + result[current.end :]
        )
    return result
