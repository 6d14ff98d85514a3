from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class NoteSummary:
    id: str
    title: str
    path: str
    updated_at: str
    outgoing_links: list[str]


@dataclass(frozen=True)
class NoteDetail:
    id: str
    title: str
    path: str
    content_markdown: str
    body: str
    frontmatter: dict
    updated_at: str
    content_hash: str
    frontmatter_error: str | None
    outgoing_links: list[str]

    def summary(self) -> NoteSummary:
        return NoteSummary(
            id=self.id,
            title=self.title,
            path=self.path,
            updated_at=self.updated_at,
            outgoing_links=self.outgoing_links,
        )


@dataclass(frozen=True)
class GraphNode:
    id: str
    title: str
    connection_count: int


@dataclass(frozen=True)
class GraphEdge:
    source_id: str
    target_id: str


@dataclass(frozen=True)
class GraphData:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
