from __future__ import annotations

import pytest

from notelinks_api.domain.exceptions import NoteLookupError
from notelinks_api.linking.service import LinkService, rank_title_suggestions
from notelinks_api.parsing import parse_frontmatter
from notelinks_api.vault import Vault


def _note(vault: Vault, title: str, body: str = ""):
    return vault.create_note(path=None, title=title, content_markdown=f"---\ntitle: {title}\n---\n{body}")


@pytest.fixture
def vault(tmp_path) -> Vault:
    return Vault(tmp_path)


def test_check_notes_exist_is_exact(vault) -> None:
    _note(vault, "Alpha")
    links = LinkService(vault)
    assert links.check_notes_exist(["Alpha", "alpha", "Beta"]) == {"Alpha": True, "alpha": False, "Beta": False}
    assert links.check_notes_exist([]) == {}


def test_backlinks_and_note_by_title(vault) -> None:
    target = _note(vault, "Target")
    a = _note(vault, "A", "points to [[Target|there]]\n")
    _note(vault, "B", "points to [[Elsewhere]]\n")
    links = LinkService(vault)

    assert [s.id for s in links.backlinks("Target")] == [a.id]
    assert links.note_by_title("Target").id == target.id
    assert links.note_by_title("Missing") is None


def test_update_links_on_rename_rewrites_referencing_notes(vault) -> None:
    _note(vault, "Old")
    a = _note(vault, "A", "see [[Old]] and [[Old|alias]] and [[Oldish]]\n")
    b = _note(vault, "B", "unrelated [[Other]]\n")
    links = LinkService(vault)

    changed = links.update_links_on_rename("Old", "New")

    assert changed == [a.id]
    a2 = vault.read_note_detail(a.id)
    assert parse_frontmatter(a2.content_markdown).frontmatter == {"title": "A"}
    assert a2.body.strip() == "see [[New]] and [[New|alias]] and [[Oldish]]"
    assert a2.outgoing_links == ["New", "Oldish"]
    assert vault.read_note_detail(b.id).content_hash == b.content_hash


def test_update_links_on_rename_same_title_is_noop(vault) -> None:
    _note(vault, "A", "[[A]]\n")
    assert LinkService(vault).update_links_on_rename("A", "A") == []


def test_update_links_on_rename_keeps_notes_without_frontmatter_plain(vault) -> None:
    d = vault.create_note(path="plain.md", title=None, content_markdown="[[Old]] here\n")
    LinkService(vault).update_links_on_rename("Old", "New")
    assert vault.read_note_detail(d.id).content_markdown == "[[New]] here\n"


def test_create_note_from_link(vault) -> None:
    links = LinkService(vault)
    detail = links.create_note_from_link("  Meeting: Q3 / plan  ")
    assert detail.title == "Meeting: Q3 / plan"
    assert links.check_notes_exist(["Meeting: Q3 / plan"]) == {"Meeting: Q3 / plan": True}

    with pytest.raises(FileExistsError):
        links.create_note_from_link("Meeting: Q3 / plan")
    with pytest.raises(ValueError):
        links.create_note_from_link("   ")


def test_rank_title_suggestions_order() -> None:
    titles = ["Zen project", "Project Plan", "project", "Other", "Projects", "My Project"]
    assert rank_title_suggestions(titles, "project") == [
        "project",
        "Project Plan",
        "Projects",
        "My Project",
        "Zen project",
    ]


def test_rank_title_suggestions_limit_and_empty() -> None:
    titles = [f"Note {i:02d}" for i in range(20)]
    assert len(rank_title_suggestions(titles, "note")) == 10
    assert rank_title_suggestions(titles, "note", limit=3) == ["Note 00", "Note 01", "Note 02"]
    assert rank_title_suggestions(titles, "") == []


def test_title_suggestions_reads_vault(vault) -> None:
    _note(vault, "Project Plan")
    _note(vault, "Groceries")
    links = LinkService(vault)
    assert links.title_suggestions("plan") == ["Project Plan"]
    assert links.title_suggestions("") == []


def test_build_graph_counts_and_edges(vault) -> None:
    a = _note(vault, "A", "[[B]] [[C]] [[Missing]]\n")
    b = _note(vault, "B", "[[A]]\n")
    c = _note(vault, "C")
    graph = LinkService(vault).build_graph()

    counts = {n.title: n.connection_count for n in graph.nodes}
    assert counts == {"A": 4, "B": 2, "C": 1}
    edges = {(e.source_id, e.target_id) for e in graph.edges}
    assert edges == {(a.id, b.id), (a.id, c.id), (b.id, a.id)}


def test_update_links_on_rename_keeps_frontmatter_bytes(vault) -> None:
    head = "---\ntitle: Ref  # my comment\ntags: [a, b]\n---\n\n"
    ref = vault.create_note(path="Ref.md", title=None, content_markdown=head + "[[Old]]\n")

    assert LinkService(vault).update_links_on_rename("Old", "New") == [ref.id]
    assert vault.read_note_detail(ref.id).content_markdown == head + "[[New]]\n"


@pytest.mark.parametrize("title", ["A|B", "A]]B", "A]"])
def test_unlinkable_titles_are_rejected(vault, title: str) -> None:
    _note(vault, "Old")
    links = LinkService(vault)
    with pytest.raises(ValueError):
        links.create_note_from_link(title)
    with pytest.raises(ValueError):
        links.update_links_on_rename("Old", title)
    assert vault.list_paths() == ["Old.md"]


def test_check_notes_exist_reports_unreadable_storage(vault, monkeypatch) -> None:
    def broken_titles(self):
        raise PermissionError("denied")

    monkeypatch.setattr(Vault, "titles", broken_titles)
    with pytest.raises(NoteLookupError) as excinfo:
        LinkService(vault).check_notes_exist(["A"])
    assert excinfo.value.reason == "storage_unavailable"
