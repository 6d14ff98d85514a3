from __future__ import annotations

from collections.abc import Iterable

from notelinks_api.domain.entities import GraphData, GraphEdge, GraphNode, NoteDetail


def build_note_graph(notes: Iterable[NoteDetail]) -> GraphData:
    """Nodes for every note, edges for every outgoing link that resolves.

    A node's connection count is its number of outgoing links (resolved or
    not) plus the number of resolved links pointing at it. When two notes
    share a title, links resolve to the one listed last.
    """
    notes = list(notes)
    title_to_id = {note.title: note.id for note in notes}

    counts: dict[str, int] = {note.id: len(note.outgoing_links) for note in notes}
    edges: list[GraphEdge] = []
    for note in notes:
        for title in note.outgoing_links:
            target_id = title_to_id.get(title)
            if target_id is None:
                continue
            counts[target_id] += 1
            edges.append(GraphEdge(source_id=note.id, target_id=target_id))

    nodes = [GraphNode(id=note.id, title=note.title, connection_count=counts[note.id]) for note in notes]
    return GraphData(nodes=nodes, edges=edges)
