from __future__ import annotations

import logging
from collections.abc import Iterable

from notelinks_api.domain.entities import GraphData, NoteDetail, NoteSummary
from notelinks_api.domain.exceptions import NoteLookupError
from notelinks_api.domain.ports import VaultRepository
from notelinks_api.linking.graph import build_note_graph
from notelinks_api.parsing import check_link_title, render_markdown_with_frontmatter, rewrite_link_targets

logger = logging.getLogger("notelinks.links")

DEFAULT_SUGGESTION_LIMIT = 10


def rank_title_suggestions(titles: Iterable[str], partial: str, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[str]:
    """Titles containing ``partial`` (case-insensitive), best matches first.

    Exact matches come first, then prefix matches, then the remaining
    substring matches; ties are broken by plain string order.
    """
    if not partial:
        return []
    needle = partial.lower()

    def rank(title: str) -> tuple[int, str]:
        lowered = title.lower()
        if lowered == needle:
            return (0, title)
        if lowered.startswith(needle):
            return (1, title)
        return (2, title)

    matches = sorted((t for t in titles if needle in t.lower()), key=rank)
    return matches[: max(limit, 0)]


class LinkService:
    def __init__(self, vault: VaultRepository) -> None:
        self.vault = vault

    def check_notes_exist(self, titles: Iterable[str]) -> dict[str, bool]:
        wanted = set(titles)
        if not wanted:
            return {}
        try:
            known = self.vault.titles()
        except OSError as e:
            logger.error("note_titles_unavailable", extra={"error": repr(e)})
            raise NoteLookupError("storage_unavailable", str(e)) from e
        return {title: title in known for title in wanted}

    def note_by_title(self, title: str) -> NoteDetail | None:
        return self.vault.find_by_title(title)

    def backlinks(self, title: str) -> list[NoteSummary]:
        return [d.summary() for d in self.vault.list_details() if title in d.outgoing_links]

    def update_links_on_rename(self, old_title: str, new_title: str) -> list[str]:
        if old_title == new_title:
            return []
        new_title = check_link_title(new_title)
        changed: list[str] = []
        for detail in self.vault.list_details():
            if old_title not in detail.outgoing_links:
                continue
            body = rewrite_link_targets(detail.body, old_title, new_title)
            if body == detail.body:
                continue
            # The body is a suffix of the file; everything before it is kept byte for byte.
            prefix = detail.content_markdown[: len(detail.content_markdown) - len(detail.body)]
            content = prefix + body
            self.vault.write_note(detail.path, content)
            changed.append(detail.id)
        logger.info("links_renamed", extra={"old": old_title, "new": new_title, "notes": len(changed)})
        return changed

    def create_note_from_link(self, title: str) -> NoteDetail:
        title = check_link_title(title)
        if self.vault.find_by_title(title) is not None:
            raise FileExistsError(title)
        content = render_markdown_with_frontmatter({"title": title}, "")
        detail = self.vault.create_note(path=None, title=title, content_markdown=content)
        logger.info("note_created_from_link", extra={"id": detail.id, "path": detail.path})
        return detail

    def title_suggestions(self, partial: str, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[str]:
        if not partial:
            return []
        return rank_title_suggestions((d.title for d in self.vault.list_details()), partial, limit)

    def build_graph(self) -> GraphData:
        return build_note_graph(self.vault.list_details())
