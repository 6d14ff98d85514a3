from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool

from notelinks_api.config import Settings
from notelinks_api.dependencies import get_link_service, get_settings, get_store, get_user_id, get_vault
from notelinks_api.domain.entities import NoteDetail, NoteSummary
from notelinks_api.domain.exceptions import NoteLookupError, PathError, TemplateVariablesMissing
from notelinks_api.domain.schemas import (
    CompleteIn,
    CompleteOut,
    GraphEdgeOut,
    GraphNodeOut,
    GraphOut,
    LinkOccurrenceOut,
    LinkSegmentOut,
    LinksOut,
    NoteCreateIn,
    NoteDetailOut,
    NoteFromLinkIn,
    NoteGetOut,
    NoteSummaryOut,
    NoteUpdateIn,
    PlainSegmentOut,
    ResolveOut,
    SpliceIn,
    SpliceOut,
    SuggestionsOut,
    TemplateRenderIn,
    TemplateRenderOut,
    TemplateVariablesOut,
    TextIn,
    TriggerIn,
    TriggerOut,
)
from notelinks_api.linking.service import LinkService
from notelinks_api.parsing import (
    LinkSegment,
    check_link_title,
    complete_link,
    find_link_trigger,
    parse_frontmatter,
    parse_links,
    render_markdown_with_frontmatter,
    splice,
)
from notelinks_api.resolver import resolve_existence, titles_of
from notelinks_api.templates import TemplateVariable, extract_variables, render_template
from notelinks_api.util import normalize_newlines_for_hash, sha256_hex
from notelinks_api.vault import NoteStore, Vault

router = APIRouter()
logger = logging.getLogger("notelinks.api")


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _detail_out(detail: NoteDetail) -> NoteDetailOut:
    return NoteDetailOut(
        id=detail.id,
        title=detail.title,
        path=detail.path,
        content_markdown=detail.content_markdown,
        frontmatter=detail.frontmatter,
        updated_at=detail.updated_at,
        content_hash=detail.content_hash,
        frontmatter_error=detail.frontmatter_error,
        outgoing_links=detail.outgoing_links,
    )


def _summary_out(summary: NoteSummary) -> NoteSummaryOut:
    return NoteSummaryOut(**summary.__dict__)


def _lookup_http_error(e: NoteLookupError) -> HTTPException:
    if e.reason == "unauthenticated":
        return HTTPException(status_code=401, detail=e.reason)
    return HTTPException(status_code=503, detail=e.reason)


async def _resolve_for_user(store: NoteStore, user_id: Optional[str], titles: set[str]) -> dict[str, bool]:
    async def lookup(wanted: set[str]) -> dict[str, bool]:
        return await run_in_threadpool(store.exists, user_id, wanted)

    try:
        return await resolve_existence(titles, lookup)
    except NoteLookupError as e:
        raise _lookup_http_error(e) from e


@router.get("/health")
def health():
    return {"ok": True}


@router.post("/links/parse", response_model=LinksOut)
def links_parse(payload: TextIn):
    return LinksOut(
        items=[
            LinkOccurrenceOut(
                target_title=occ.target_title,
                display_text=occ.display_text,
                start_index=occ.start_index,
                end_index=occ.end_index,
            )
            for occ in parse_links(payload.text)
        ]
    )


@router.post("/links/splice", response_model=SpliceOut)
async def links_splice(
    payload: SpliceIn,
    user_id: Optional[str] = Depends(get_user_id),
    store: NoteStore = Depends(get_store),
):
    occurrences = parse_links(payload.text)
    existence: dict[str, bool] = {}
    if payload.resolve:
        existence = await _resolve_for_user(store, user_id, titles_of(occurrences))

    segments: list[PlainSegmentOut | LinkSegmentOut] = []
    for seg in splice(payload.text, occurrences):
        if isinstance(seg, LinkSegment):
            segments.append(
                LinkSegmentOut(
                    display_text=seg.display_text,
                    target_title=seg.target_title,
                    exists=existence.get(seg.target_title) if payload.resolve else None,
                )
            )
        else:
            segments.append(PlainSegmentOut(text=seg.text))
    return SpliceOut(segments=segments)


@router.post("/links/resolve", response_model=ResolveOut)
async def links_resolve(
    payload: TextIn,
    request: Request,
    user_id: Optional[str] = Depends(get_user_id),
    store: NoteStore = Depends(get_store),
):
    existence = await _resolve_for_user(store, user_id, titles_of(parse_links(payload.text)))
    broken = sorted(title for title, present in existence.items() if not present)
    logger.info("links_resolve", extra={"rid": _rid(request), "titles": len(existence), "broken": len(broken)})
    return ResolveOut(existence=existence, broken=broken)


@router.post("/links/trigger", response_model=TriggerOut)
def links_trigger(payload: TriggerIn):
    trigger = find_link_trigger(payload.text, payload.cursor)
    if trigger is None:
        return TriggerOut(active=False)
    return TriggerOut(active=True, start_index=trigger.start_index, query=trigger.query)


@router.post("/links/complete", response_model=CompleteOut)
def links_complete(payload: CompleteIn):
    try:
        text, cursor = complete_link(payload.text, payload.cursor, payload.title)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return CompleteOut(text=text, cursor=cursor)


@router.get("/links/suggest", response_model=SuggestionsOut)
def links_suggest(
    q: str = "",
    limit: Optional[int] = Query(None, ge=1, le=50),
    links: LinkService = Depends(get_link_service),
    settings: Settings = Depends(get_settings),
):
    return SuggestionsOut(items=links.title_suggestions(q, limit or settings.link_suggestion_limit))


@router.get("/notes")
def list_notes(
    limit: int = Query(100, ge=1, le=500),
    cursor: int = Query(0, ge=0),
    q: Optional[str] = None,
    vault: Vault = Depends(get_vault),
):
    items = vault.list_summaries(q=q)
    page = items[cursor : cursor + limit]
    next_cursor = cursor + limit if cursor + limit < len(items) else None
    return {"items": [_summary_out(p).model_dump() for p in page], "next_cursor": next_cursor}


@router.post("/notes", response_model=NoteDetailOut)
def create_note(
    payload: NoteCreateIn,
    request: Request,
    vault: Vault = Depends(get_vault),
):
    try:
        content = payload.content_markdown
        frontmatter = payload.frontmatter
        if payload.title and payload.title.strip():
            frontmatter = {**(frontmatter or parse_frontmatter(content).frontmatter), "title": payload.title.strip()}
        if frontmatter is not None:
            body = parse_frontmatter(content).body
            content = render_markdown_with_frontmatter(frontmatter, body)
        detail = vault.create_note(payload.path, payload.title, content)
        logger.info("note_create", extra={"rid": _rid(request), "id": detail.id, "path": detail.path})
        return _detail_out(detail)
    except PathError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except FileExistsError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.post("/notes/from-link", response_model=NoteDetailOut)
def create_note_from_link(
    payload: NoteFromLinkIn,
    request: Request,
    links: LinkService = Depends(get_link_service),
):
    try:
        detail = links.create_note_from_link(payload.title)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except FileExistsError as e:
        raise HTTPException(status_code=409, detail="note_title_exists") from e
    logger.info("note_create_from_link", extra={"rid": _rid(request), "id": detail.id})
    return _detail_out(detail)


@router.get("/notes/by-title/backlinks")
def backlinks_by_title(
    title: str,
    links: LinkService = Depends(get_link_service),
):
    return {"items": [_summary_out(s).model_dump() for s in links.backlinks(title)]}


@router.get("/notes/{note_id}", response_model=NoteGetOut)
def get_note(
    note_id: str,
    vault: Vault = Depends(get_vault),
    links: LinkService = Depends(get_link_service),
):
    try:
        detail = vault.read_note_detail(note_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail="note_not_found") from e

    try:
        link_existence = links.check_notes_exist(detail.outgoing_links)
    except NoteLookupError as e:
        raise _lookup_http_error(e) from e

    return NoteGetOut(
        note=_detail_out(detail),
        link_existence=link_existence,
        backlinks=[_summary_out(s) for s in links.backlinks(detail.title) if s.id != detail.id],
    )


@router.put("/notes/{note_id}", response_model=NoteDetailOut)
def update_note(
    note_id: str,
    payload: NoteUpdateIn,
    request: Request,
    vault: Vault = Depends(get_vault),
    links: LinkService = Depends(get_link_service),
):
    try:
        # Captured before any move: a path rename can change a stem-derived title.
        old_title = vault.read_note_detail(note_id).title
        new_title = check_link_title(payload.title) if payload.title and payload.title.strip() else None

        if payload.path:
            vault.rename_note(note_id, payload.path)

        existing = vault.read_note_detail(note_id)

        if payload.content_markdown is not None or payload.frontmatter is not None or new_title:
            if payload.content_markdown is not None and payload.frontmatter is None and not new_title:
                content = payload.content_markdown
            else:
                source = existing.content_markdown if payload.content_markdown is None else payload.content_markdown
                parsed = parse_frontmatter(source)
                frontmatter = dict(payload.frontmatter if payload.frontmatter is not None else parsed.frontmatter)
                if new_title:
                    frontmatter["title"] = new_title
                content = render_markdown_with_frontmatter(frontmatter, parsed.body) if frontmatter else parsed.body

            content_hash = sha256_hex(normalize_newlines_for_hash(content))
            if content_hash != existing.content_hash:
                vault.write_note(existing.path, content)

        detail = vault.read_note_detail(note_id)
        if detail.title != old_title:
            changed = links.update_links_on_rename(old_title, detail.title)
            logger.info(
                "note_title_change",
                extra={"rid": _rid(request), "id": note_id, "rewritten_notes": len(changed)},
            )
            detail = vault.read_note_detail(note_id)
        logger.info("note_update", extra={"rid": _rid(request), "id": detail.id, "path": detail.path})
        return _detail_out(detail)
    except PathError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail="note_not_found") from e
    except FileExistsError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/notes/{note_id}")
def delete_note(
    note_id: str,
    request: Request,
    vault: Vault = Depends(get_vault),
):
    try:
        path = vault.delete_note(note_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail="note_not_found") from e
    logger.info("note_delete", extra={"rid": _rid(request), "id": note_id, "path": path})
    return {"ok": True}


@router.get("/graph", response_model=GraphOut)
def graph(links: LinkService = Depends(get_link_service)):
    data = links.build_graph()
    return GraphOut(
        nodes=[GraphNodeOut(**n.__dict__) for n in data.nodes],
        edges=[GraphEdgeOut(**e.__dict__) for e in data.edges],
    )


@router.post("/templates/variables", response_model=TemplateVariablesOut)
def template_variables(payload: TextIn):
    return TemplateVariablesOut(names=extract_variables(payload.text))


@router.post("/templates/render", response_model=TemplateRenderOut)
def template_render(payload: TemplateRenderIn):
    variables = [TemplateVariable(name=v.name, placeholder=v.placeholder, required=v.required) for v in payload.variables]
    try:
        content = render_template(payload.content, payload.values, variables)
    except TemplateVariablesMissing as e:
        raise HTTPException(status_code=422, detail={"error": "template_variables_missing", "names": e.names}) from e
    return TemplateRenderOut(content=content)
