import pytest

from notelinks_api.parsing import (
    check_link_title,
    complete_link,
    format_link,
    find_link_trigger,
    outgoing_titles,
    parse_frontmatter,
    parse_links,
    rewrite_link_targets,
)


def test_frontmatter_parses_at_byte_zero() -> None:
    md = "---\ntitle: Hello\ntags: [One, Two]\n---\n\nBody\n"
    fm = parse_frontmatter(md)
    assert fm.error is None
    assert fm.frontmatter["title"] == "Hello"
    assert "Body" in fm.body


def test_frontmatter_ignored_when_not_first_line() -> None:
    md = "\n---\ntitle: Hello\n---\nBody\n"
    fm = parse_frontmatter(md)
    assert fm.frontmatter == {}
    assert fm.error is None


def test_frontmatter_yaml_error_falls_back_to_no_frontmatter() -> None:
    md = "---\ntitle: [oops\n---\nBody\n"
    fm = parse_frontmatter(md)
    assert fm.frontmatter == {}
    assert fm.error == "frontmatter_yaml_error"
    assert fm.body == md


@pytest.mark.parametrize("text", ["", "no links here", "[[Unclosed", "[[ ]]", "[[|Alias]]", "]] [["])
def test_parse_links_finds_nothing(text: str) -> None:
    assert parse_links(text) == []


def test_parse_links_single_link_span() -> None:
    text = "See [[Project Plan]] now"
    (link,) = parse_links(text)
    assert link.target_title == "Project Plan"
    assert link.display_text == "Project Plan"
    assert link.alias is None
    assert text[link.start_index : link.end_index] == "[[Project Plan]]"


def test_parse_links_aliases_in_document_order() -> None:
    links = parse_links("[[A|Alpha]] and [[B|Beta]]")
    assert [l.target_title for l in links] == ["A", "B"]
    assert [l.display_text for l in links] == ["Alpha", "Beta"]
    assert [(l.start_index, l.end_index) for l in links] == [(0, 11), (16, 26)]


def test_parse_links_trims_target_and_alias() -> None:
    (link,) = parse_links("[[  Target  |  Shown  ]]")
    assert link.target_title == "Target"
    assert link.display_text == "Shown"


def test_parse_links_splits_on_first_pipe_only() -> None:
    (link,) = parse_links("[[A|b|c]]")
    assert link.target_title == "A"
    assert link.display_text == "b|c"


def test_parse_links_keeps_empty_alias() -> None:
    (link,) = parse_links("[[Title|]]")
    assert link.target_title == "Title"
    assert link.display_text == ""
    assert link.alias == ""


def test_parse_links_first_open_pairs_with_next_close() -> None:
    text = "x [[A[[B]] y"
    (link,) = parse_links(text)
    assert link.target_title == "A[[B"
    assert (link.start_index, link.end_index) == (2, 10)


def test_parse_links_resumes_after_empty_target() -> None:
    links = parse_links("[[ ]][[Real]]")
    assert [l.target_title for l in links] == ["Real"]
    assert links[0].start_index == 5


def test_parse_links_unclosed_then_text_only() -> None:
    assert parse_links("[[[[[[") == []
    assert parse_links("[[a]] then [[b") == parse_links("[[a]]")


def test_parse_links_offsets_are_str_indices() -> None:
    text = "café → [[Ñandú|ñ]]"
    (link,) = parse_links(text)
    assert text[link.start_index : link.end_index] == "[[Ñandú|ñ]]"
    assert link.target_title == "Ñandú"


def test_parse_links_multiline_body() -> None:
    (link,) = parse_links("[[Two\nLines]]")
    assert link.target_title == "Two\nLines"


def test_parse_links_non_overlapping_and_ordered() -> None:
    text = "[[a]][[b|B]] [[ ]] [[c[[d]] ]] [[e]] [[f"
    links = parse_links(text)
    assert [l.target_title for l in links] == ["a", "b", "c[[d", "e"]
    for prev, nxt in zip(links, links[1:]):
        assert prev.end_index <= nxt.start_index
    for link in links:
        assert 0 <= link.start_index < link.end_index <= len(text)


def test_outgoing_titles_are_distinct_in_first_seen_order() -> None:
    assert outgoing_titles("[[B]] [[A|x]] [[B|y]] [[a]]") == ["B", "A", "a"]


def test_rewrite_link_targets_preserves_alias_and_other_links() -> None:
    text = "[[Old]] and [[Old|shown]] but not [[Older]] or [[old]]"
    assert rewrite_link_targets(text, "Old", "New") == "[[New]] and [[New|shown]] but not [[Older]] or [[old]]"


def test_rewrite_link_targets_without_matches_is_identity() -> None:
    text = "plain [[Other]] text [[unclosed"
    assert rewrite_link_targets(text, "Old", "New") == text


def test_find_link_trigger_open_link() -> None:
    text = "see [[Proj"
    trigger = find_link_trigger(text, len(text))
    assert trigger is not None
    assert trigger.start_index == 4
    assert trigger.query == "Proj"


@pytest.mark.parametrize(
    ("text", "cursor"),
    [
        ("no trigger", 10),
        ("[[Done]] after", 14),
        ("[[Done]]", 8),
        ("[[x", 1),
    ],
)
def test_find_link_trigger_inactive(text: str, cursor: int) -> None:
    assert find_link_trigger(text, cursor) is None


def test_find_link_trigger_clamps_cursor() -> None:
    trigger = find_link_trigger("[[ab", 99)
    assert trigger is not None
    assert trigger.query == "ab"


def test_complete_link_replaces_query_up_to_cursor() -> None:
    text = "see [[Pro and more"
    new_text, cursor = complete_link(text, 9, "Project Plan")
    assert new_text == "see [[Project Plan]] and more"
    assert new_text[:cursor] == "see [[Project Plan]]"


def test_complete_link_without_trigger_is_noop() -> None:
    assert complete_link("plain", 3, "X") == ("plain", 3)


def test_check_link_title_trims() -> None:
    assert check_link_title("  Project Plan ") == "Project Plan"
    assert format_link(" Project Plan ", "pp") == "[[Project Plan|pp]]"


@pytest.mark.parametrize("title", ["", "   ", "A|B", "A]]B", "A]"])
def test_unlinkable_titles_raise(title: str) -> None:
    with pytest.raises(ValueError):
        check_link_title(title)
    with pytest.raises(ValueError):
        format_link(title)


def test_complete_link_rejects_unlinkable_title() -> None:
    with pytest.raises(ValueError):
        complete_link("see [[x", 7, "x|y")
