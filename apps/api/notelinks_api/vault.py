from __future__ import annotations

import json
import logging
import threading
import uuid
from pathlib import Path, PurePosixPath

from notelinks_api.domain.entities import NoteDetail, NoteSummary
from notelinks_api.domain.exceptions import NoteLookupError, PathError
from notelinks_api.parsing import extract_title, outgoing_titles, parse_frontmatter
from notelinks_api.util import (
    atomic_write_json,
    atomic_write_text,
    is_valid_user_id,
    normalize_newlines_for_hash,
    rfc3339_from_timestamp,
    safe_filename_stem,
    sha256_hex,
)

META_DIR = ".notelinks"

logger = logging.getLogger("notelinks.vault")

_INDEX_LOCKS: dict[Path, threading.RLock] = {}
_INDEX_LOCKS_GUARD = threading.Lock()


def _index_lock(path: Path) -> threading.RLock:
    with _INDEX_LOCKS_GUARD:
        lock = _INDEX_LOCKS.get(path)
        if lock is None:
            lock = _INDEX_LOCKS[path] = threading.RLock()
        return lock


def normalize_note_path(path: str) -> str:
    if "\x00" in path:
        raise PathError("path_contains_nul")

    cleaned = path.strip().replace("\\", "/")
    if not cleaned:
        raise PathError("path_empty")

    p = PurePosixPath(cleaned)
    if p.is_absolute():
        raise PathError("path_absolute_not_allowed")
    if ".." in p.parts:
        raise PathError("path_traversal_not_allowed")
    if p.parts and p.parts[0] == META_DIR:
        raise PathError("path_reserved")

    if p.suffix.lower() != ".md":
        p = p.with_name(p.name + ".md")

    return p.as_posix()


class NoteIdIndex:
    def __init__(self, vault_dir: Path) -> None:
        self.vault_dir = vault_dir
        self.meta_dir = vault_dir / META_DIR
        self.path = self.meta_dir / "notes.json"
        self.lock = _index_lock(self.path)

    def _load_mapping(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("note_id_index_corrupt", extra={"path": str(self.path)})
            return {}
        if isinstance(data, dict):
            return {str(k): str(v) for k, v in data.items()}
        return {}

    def _write_mapping(self, mapping: dict[str, str]) -> None:
        self.meta_dir.mkdir(parents=True, exist_ok=True)
        atomic_write_json(self.path, mapping)

    def ensure_id_for_path(self, note_path: str) -> str:
        existing = self._load_mapping().get(note_path)
        if existing:
            return existing
        with self.lock:
            mapping = self._load_mapping()
            existing = mapping.get(note_path)
            if existing:
                return existing
            new_id = str(uuid.uuid4())
            mapping[note_path] = new_id
            self._write_mapping(mapping)
            return new_id

    def delete_path(self, note_path: str) -> None:
        with self.lock:
            mapping = self._load_mapping()
            if note_path in mapping:
                mapping.pop(note_path, None)
                self._write_mapping(mapping)

    def resolve_path(self, note_id: str) -> str | None:
        mapping = self._load_mapping()
        for path, mapped_id in mapping.items():
            if mapped_id == note_id:
                return path
        return None

    def rename_path(self, old_path: str, new_path: str) -> None:
        with self.lock:
            mapping = self._load_mapping()
            note_id = mapping.get(old_path) or str(uuid.uuid4())
            mapping.pop(old_path, None)
            mapping[new_path] = note_id
            self._write_mapping(mapping)


class Vault:
    """One user's notes: markdown files with optional YAML frontmatter."""

    def __init__(self, vault_dir: Path) -> None:
        self.vault_dir = vault_dir.resolve()
        self.ids = NoteIdIndex(self.vault_dir)

    def _abs_path(self, note_path: str) -> Path:
        return (self.vault_dir / PurePosixPath(note_path)).resolve()

    def _ensure_under_vault(self, abs_path: Path) -> None:
        if self.vault_dir not in abs_path.parents and abs_path != self.vault_dir:
            raise PathError("path_outside_vault")

    def list_paths(self) -> list[str]:
        if not self.vault_dir.exists():
            return []
        paths: list[str] = []
        for p in self.vault_dir.rglob("*.md"):
            rel = p.relative_to(self.vault_dir).as_posix()
            if rel.startswith(f"{META_DIR}/"):
                continue
            paths.append(rel)
        return sorted(paths)

    def read_note_detail_by_path(self, note_path: str) -> NoteDetail:
        abs_path = self._abs_path(note_path)
        self._ensure_under_vault(abs_path)
        if not abs_path.exists():
            raise FileNotFoundError(note_path)
        content = abs_path.read_text(encoding="utf-8")
        fm = parse_frontmatter(content)
        return NoteDetail(
            id=self.ids.ensure_id_for_path(note_path),
            title=extract_title(fm.frontmatter, note_path),
            path=note_path,
            content_markdown=content,
            body=fm.body,
            frontmatter=fm.frontmatter,
            updated_at=rfc3339_from_timestamp(abs_path.stat().st_mtime),
            content_hash=sha256_hex(normalize_newlines_for_hash(content)),
            frontmatter_error=fm.error,
            outgoing_links=outgoing_titles(fm.body),
        )

    def read_note_detail(self, note_id: str) -> NoteDetail:
        note_path = self.ids.resolve_path(note_id)
        if not note_path:
            raise FileNotFoundError(note_id)
        return self.read_note_detail_by_path(note_path)

    def list_details(self) -> list[NoteDetail]:
        return [self.read_note_detail_by_path(p) for p in self.list_paths()]

    def list_summaries(self, q: str | None = None) -> list[NoteSummary]:
        needle = q.strip().lower() if q else None
        summaries: list[NoteSummary] = []
        for detail in self.list_details():
            if needle and needle not in detail.title.lower() and needle not in detail.path.lower():
                continue
            summaries.append(detail.summary())
        summaries.sort(key=lambda n: n.updated_at, reverse=True)
        return summaries

    def read_title(self, note_path: str) -> str:
        abs_path = self._abs_path(note_path)
        self._ensure_under_vault(abs_path)
        fm = parse_frontmatter(abs_path.read_text(encoding="utf-8"))
        return extract_title(fm.frontmatter, note_path)

    def titles(self) -> set[str]:
        # Never assigns note ids; notes removed mid-scan are skipped.
        found: set[str] = set()
        for note_path in self.list_paths():
            try:
                found.add(self.read_title(note_path))
            except FileNotFoundError:
                continue
        return found

    def find_by_title(self, title: str) -> NoteDetail | None:
        for detail in self.list_details():
            if detail.title == title:
                return detail
        return None

    def generate_path(self, title: str | None) -> str:
        stem = safe_filename_stem(title or "Untitled")
        candidate = f"{stem}.md"
        idx = 2
        while self._abs_path(candidate).exists():
            candidate = f"{stem}-{idx}.md"
            idx += 1
        return candidate

    def write_note(self, note_path: str, content_markdown: str) -> NoteDetail:
        abs_path = self._abs_path(note_path)
        self._ensure_under_vault(abs_path)
        atomic_write_text(abs_path, content_markdown)
        return self.read_note_detail_by_path(note_path)

    def create_note(self, path: str | None, title: str | None, content_markdown: str) -> NoteDetail:
        note_path = normalize_note_path(path) if path else self.generate_path(title)
        abs_path = self._abs_path(note_path)
        self._ensure_under_vault(abs_path)
        if abs_path.exists():
            raise FileExistsError(note_path)
        return self.write_note(note_path, content_markdown)

    def delete_note(self, note_id: str) -> str:
        note_path = self.ids.resolve_path(note_id)
        if not note_path:
            raise FileNotFoundError(note_id)
        abs_path = self._abs_path(note_path)
        self._ensure_under_vault(abs_path)
        if abs_path.exists():
            abs_path.unlink()
        self.ids.delete_path(note_path)
        return note_path

    def rename_note(self, note_id: str, new_path: str) -> NoteDetail:
        new_path_norm = normalize_note_path(new_path)
        old_path = self.ids.resolve_path(note_id)
        if not old_path:
            raise FileNotFoundError(note_id)

        old_abs = self._abs_path(old_path)
        new_abs = self._abs_path(new_path_norm)
        self._ensure_under_vault(old_abs)
        self._ensure_under_vault(new_abs)
        if not old_abs.exists():
            raise FileNotFoundError(old_path)
        if new_abs.exists():
            raise FileExistsError(new_path_norm)
        new_abs.parent.mkdir(parents=True, exist_ok=True)
        old_abs.replace(new_abs)
        self.ids.rename_path(old_path, new_path_norm)
        return self.read_note_detail(note_id)


class NoteStore:
    """Per-user vaults rooted at ``root_dir/<user_id>``."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir

    def for_user(self, user_id: str | None) -> Vault:
        if not user_id:
            raise NoteLookupError("unauthenticated")
        if not is_valid_user_id(user_id):
            raise NoteLookupError("unauthenticated", "invalid user id")
        return Vault(self.root_dir / user_id)

    def exists(self, user_id: str | None, titles: set[str]) -> dict[str, bool]:
        vault = self.for_user(user_id)
        if not titles:
            return {}
        try:
            known = vault.titles()
        except OSError as e:
            logger.error("note_store_unavailable", extra={"user": user_id, "error": repr(e)})
            raise NoteLookupError("storage_unavailable", str(e)) from e
        return {title: title in known for title in titles}
