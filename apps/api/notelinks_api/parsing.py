from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence, Union

import yaml

LINK_OPEN = "[["
LINK_CLOSE = "]]"
ALIAS_SEPARATOR = "|"


@dataclass(frozen=True)
class FrontmatterParse:
    frontmatter: dict
    body: str
    error: str | None


@dataclass(frozen=True)
class LinkOccurrence:
    target_title: str
    display_text: str
    start_index: int
    end_index: int
    alias: str | None = None


@dataclass(frozen=True)
class PlainSegment:
    text: str
    kind: Literal["plain"] = "plain"


@dataclass(frozen=True)
class LinkSegment:
    display_text: str
    target_title: str
    kind: Literal["link"] = "link"


Segment = Union[PlainSegment, LinkSegment]


@dataclass(frozen=True)
class LinkTrigger:
    start_index: int
    query: str


def parse_frontmatter(markdown: str) -> FrontmatterParse:
    if not markdown.startswith("---"):
        return FrontmatterParse(frontmatter={}, body=markdown, error=None)

    first_newline = markdown.find("\n")
    if first_newline == -1:
        return FrontmatterParse(frontmatter={}, body=markdown, error=None)

    first_line = markdown[:first_newline].rstrip("\r")
    if first_line != "---":
        return FrontmatterParse(frontmatter={}, body=markdown, error=None)

    # Find a subsequent line that is exactly `---`
    search_from = first_newline + 1
    while True:
        next_newline = markdown.find("\n", search_from)
        if next_newline == -1:
            line = markdown[search_from:].rstrip("\r")
            if line != "---":
                return FrontmatterParse(frontmatter={}, body=markdown, error=None)
            next_newline = len(markdown)
        else:
            line = markdown[search_from:next_newline].rstrip("\r")
        if line == "---":
            yaml_block = markdown[first_newline + 1 : search_from]
            body = markdown[next_newline + 1 :]
            try:
                parsed = yaml.safe_load(yaml_block) or {}
            except yaml.YAMLError:
                return FrontmatterParse(frontmatter={}, body=markdown, error="frontmatter_yaml_error")
            if not isinstance(parsed, dict):
                return FrontmatterParse(frontmatter={}, body=markdown, error="frontmatter_not_mapping")
            return FrontmatterParse(frontmatter=parsed, body=body, error=None)
        search_from = next_newline + 1


def render_markdown_with_frontmatter(frontmatter: dict, body: str) -> str:
    if not frontmatter:
        return body
    yaml_text = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True).strip("\n")
    return f"---\n{yaml_text}\n---\n\n{body.lstrip()}"


def parse_links(text: str) -> list[LinkOccurrence]:
    """Scan ``text`` for ``[[Target]]`` and ``[[Target|Alias]]`` links.

    The first ``[[`` always pairs with the next ``]]`` after it, so
    ``[[A[[B]]`` is one link whose target is ``A[[B``. Bodies split on the
    first pipe only. Links with an empty target and unterminated ``[[`` are
    left as literal text. Occurrences come back in document order and never
    overlap; offsets are half-open ``str`` indices.
    """
    links: list[LinkOccurrence] = []
    i = 0
    length = len(text)

    while i < length:
        start = text.find(LINK_OPEN, i)
        if start == -1:
            break
        close = text.find(LINK_CLOSE, start + len(LINK_OPEN))
        if close == -1:
            # No `]]` remains anywhere after this point, so no later `[[` can close either.
            break

        body = text[start + len(LINK_OPEN) : close]
        end = close + len(LINK_CLOSE)
        if ALIAS_SEPARATOR in body:
            target_raw, alias_raw = body.split(ALIAS_SEPARATOR, 1)
            target_title = target_raw.strip()
            alias: str | None = alias_raw.strip()
        else:
            target_title = body.strip()
            alias = None

        if target_title:
            links.append(
                LinkOccurrence(
                    target_title=target_title,
                    display_text=alias if alias is not None else target_title,
                    start_index=start,
                    end_index=end,
                    alias=alias,
                )
            )
        i = end

    return links


def outgoing_titles(text: str) -> list[str]:
    seen: dict[str, None] = {}
    for link in parse_links(text):
        seen.setdefault(link.target_title, None)
    return list(seen)


def splice(text: str, occurrences: Sequence[LinkOccurrence]) -> list[Segment]:
    """Interleave plain text and link segments for rendering.

    Gaps are always emitted, even when empty, so ``n`` occurrences yield
    ``2n + 1`` segments. Link syntax is replaced by its display text; the
    result is not meant to reproduce ``text``.
    """
    segments: list[Segment] = []
    cursor = 0
    for occ in occurrences:
        segments.append(PlainSegment(text[cursor : occ.start_index]))
        segments.append(LinkSegment(display_text=occ.display_text, target_title=occ.target_title))
        cursor = occ.end_index
    segments.append(PlainSegment(text[cursor:]))
    return segments


def check_link_title(title: str) -> str:
    """Return the trimmed title, or raise ``ValueError`` if a link to it would not parse back."""
    title = title.strip()
    if not title:
        raise ValueError("title_empty")
    if ALIAS_SEPARATOR in title or LINK_CLOSE in title or title.endswith("]"):
        raise ValueError("title_not_linkable")
    return title


def format_link(target_title: str, alias: str | None = None) -> str:
    target_title = check_link_title(target_title)
    if alias is None:
        return f"{LINK_OPEN}{target_title}{LINK_CLOSE}"
    return f"{LINK_OPEN}{target_title}{ALIAS_SEPARATOR}{alias}{LINK_CLOSE}"


def rewrite_link_targets(text: str, old_title: str, new_title: str) -> str:
    parts: list[str] = []
    cursor = 0
    for occ in parse_links(text):
        if occ.target_title != old_title:
            continue
        parts.append(text[cursor : occ.start_index])
        parts.append(format_link(new_title, occ.alias))
        cursor = occ.end_index
    parts.append(text[cursor:])
    return "".join(parts)


def find_link_trigger(text: str, cursor: int) -> LinkTrigger | None:
    cursor = max(0, min(cursor, len(text)))
    before_cursor = text[:cursor]
    start = before_cursor.rfind(LINK_OPEN)
    if start == -1:
        return None
    if LINK_CLOSE in before_cursor[start:]:
        return None
    return LinkTrigger(start_index=start, query=before_cursor[start + len(LINK_OPEN) :])


def complete_link(text: str, cursor: int, title: str) -> tuple[str, int]:
    cursor = max(0, min(cursor, len(text)))
    trigger = find_link_trigger(text, cursor)
    if trigger is None:
        return text, cursor
    link = format_link(title)
    new_text = text[: trigger.start_index] + link + text[cursor:]
    return new_text, trigger.start_index + len(link)


def extract_title(frontmatter: dict, path: str) -> str:
    title = frontmatter.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    stem = path.rsplit("/", 1)[-1]
    return stem[:-3] if stem.lower().endswith(".md") else stem
