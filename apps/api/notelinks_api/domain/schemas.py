from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class NoteSummaryOut(BaseModel):
    id: str
    title: str
    path: str
    updated_at: str
    outgoing_links: list[str] = Field(default_factory=list)


class NoteDetailOut(BaseModel):
    id: str
    title: str
    path: str
    content_markdown: str
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    updated_at: str
    content_hash: str
    frontmatter_error: Optional[str] = None
    outgoing_links: list[str] = Field(default_factory=list)


class NoteGetOut(BaseModel):
    note: NoteDetailOut
    link_existence: dict[str, bool] = Field(default_factory=dict)
    backlinks: list[NoteSummaryOut] = Field(default_factory=list)


class NoteCreateIn(BaseModel):
    path: Optional[str] = None
    title: Optional[str] = None
    content_markdown: str = ""
    frontmatter: Optional[dict[str, Any]] = None


class NoteUpdateIn(BaseModel):
    path: Optional[str] = None
    title: Optional[str] = None
    content_markdown: Optional[str] = None
    frontmatter: Optional[dict[str, Any]] = None


class NoteFromLinkIn(BaseModel):
    title: str


class TextIn(BaseModel):
    text: str


class LinkOccurrenceOut(BaseModel):
    target_title: str
    display_text: str
    start_index: int
    end_index: int


class LinksOut(BaseModel):
    items: list[LinkOccurrenceOut] = Field(default_factory=list)


class SpliceIn(BaseModel):
    text: str
    resolve: bool = False


class PlainSegmentOut(BaseModel):
    kind: Literal["plain"] = "plain"
    text: str


class LinkSegmentOut(BaseModel):
    kind: Literal["link"] = "link"
    display_text: str
    target_title: str
    exists: Optional[bool] = None


class SpliceOut(BaseModel):
    segments: list[Union[PlainSegmentOut, LinkSegmentOut]] = Field(default_factory=list)


class ResolveOut(BaseModel):
    existence: dict[str, bool] = Field(default_factory=dict)
    broken: list[str] = Field(default_factory=list)


class TriggerIn(BaseModel):
    text: str
    cursor: int = Field(ge=0)


class TriggerOut(BaseModel):
    active: bool
    start_index: Optional[int] = None
    query: Optional[str] = None


class CompleteIn(TriggerIn):
    title: str


class CompleteOut(BaseModel):
    text: str
    cursor: int


class SuggestionsOut(BaseModel):
    items: list[str] = Field(default_factory=list)


class GraphNodeOut(BaseModel):
    id: str
    title: str
    connection_count: int


class GraphEdgeOut(BaseModel):
    source_id: str
    target_id: str


class GraphOut(BaseModel):
    nodes: list[GraphNodeOut] = Field(default_factory=list)
    edges: list[GraphEdgeOut] = Field(default_factory=list)


class TemplateVariableIn(BaseModel):
    name: str
    placeholder: str = ""
    required: bool = False


class TemplateVariablesOut(BaseModel):
    names: list[str] = Field(default_factory=list)


class TemplateRenderIn(BaseModel):
    content: str
    values: dict[str, str] = Field(default_factory=dict)
    variables: list[TemplateVariableIn] = Field(default_factory=list)


class TemplateRenderOut(BaseModel):
    content: str
