from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from .errors import CorruptDocument, DeleteFailed, DuplicateIdentifier, PersistenceError
from .fs import FileSystem, LocalFileSystem
from .library import LibraryIndex, Song
from .models import PROJECT_SCHEMA_VERSION, ProjectDocument, TagRecord, utc_now_iso
from .staging import ImportStaging

logger = logging.getLogger(__name__)

PROJECT_SUFFIX = ".mtproj"

PathLike = Union[str, Path]


def ensure_project_suffix(path: PathLike) -> Path:
    p = Path(path)
    if not p.suffix:
        p = p.with_suffix(PROJECT_SUFFIX)
    return p


class Project:
    """The working set: library index, import staging and the file they live in."""

    def __init__(self, fs: Optional[FileSystem] = None) -> None:
        self.fs: FileSystem = fs or LocalFileSystem()
        self.index = LibraryIndex(self.fs)
        self.staging = ImportStaging(self.index)
        self.current_path: Optional[Path] = None
        self.created_at = utc_now_iso()
        self.dirty = False

    def mark_dirty(self) -> None:
        self.dirty = True

    # ---- operations spanning index and staging

    def remove_songs(self, songs: Iterable[Song], also_delete_file: bool = False) -> List[DeleteFailed]:
        """Remove songs from the index and from staging.

        Delete failures are collected per song; the index change stands.
        """
        batch = list(songs)
        failures = self.index.remove_songs(batch, also_delete_file=also_delete_file)
        self.staging.remove_from_import(batch)
        self.mark_dirty()
        return failures

    # ---- document conversion

    def to_document(self) -> ProjectDocument:
        tags = [
            TagRecord(
                id=t.id,
                name=t.name,
                category=t.category,
                songs=[s.path for s in self.index.songs_of(t)],
            )
            for t in self.index.tags
        ]
        return ProjectDocument(
            schema_version=PROJECT_SCHEMA_VERSION,
            created_at=self.created_at,
            updated_at=utc_now_iso(),
            tags=tags,
            songs=[s.path for s in self.index.songs],
            import_list=self.staging.paths,
        )

    def _build(self, doc: ProjectDocument) -> Tuple[LibraryIndex, ImportStaging]:
        index = LibraryIndex(self.fs)
        for path in doc.songs:
            index.register_song(path)
        for rec in doc.tags:
            try:
                tag = index.create_tag(rec.name, rec.category, rec.id)
            except DuplicateIdentifier as exc:
                raise CorruptDocument(f"Tag ID {rec.id} appears more than once", {"id": rec.id}) from exc
            for path in rec.songs:
                index.link_tag(index.register_song(path), tag)
        staging = ImportStaging(index)
        staging.reset(index.register_song(p) for p in doc.import_list)
        index.check_integrity()
        return index, staging

    # ---- persistence

    def save(self, target: Optional[PathLike] = None) -> Path:
        path = Path(target) if target is not None else self.current_path
        if path is None:
            raise PersistenceError("No project file selected")
        _write_document(self.to_document(), path)
        self.current_path = path
        self.dirty = False
        logger.info("Saved project %s (%d tags, %d songs)", path, len(self.index.tags), len(self.index.songs))
        return path

    def load(self, source: PathLike) -> None:
        """Replace the in-memory state with the document at source.

        Everything is parsed and rebuilt on the side first; on any failure
        the current state is left as it was.
        """
        path = Path(source)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Could not read project '{path}': {exc}") from exc

        if not isinstance(data, dict):
            raise CorruptDocument(f"Project '{path}' is not a JSON object")
        try:
            doc = ProjectDocument.model_validate(data)
        except ValidationError as exc:
            raise CorruptDocument(f"Project '{path}' is malformed", {"errors": exc.errors(include_url=False, include_context=False, include_input=False)}) from exc

        index, staging = self._build(doc)

        self.index = index
        self.staging = staging
        self.current_path = path
        self.created_at = doc.created_at
        self.dirty = False
        if doc.schema_version < PROJECT_SCHEMA_VERSION:
            logger.info("Project %s uses schema %d; it will be upgraded on save", path, doc.schema_version)
        logger.info("Loaded project %s (%d tags, %d songs)", path, len(index.tags), len(index.songs))

    def new(self, target: PathLike) -> Path:
        """Start an empty project and write it to target right away."""
        path = Path(target)
        fresh = Project(self.fs)
        _write_document(fresh.to_document(), path)

        self.index = fresh.index
        self.staging = fresh.staging
        self.created_at = fresh.created_at
        self.current_path = path
        self.dirty = False
        logger.info("Created project %s", path)
        return path

    def open_or_create(self, path: PathLike) -> None:
        p = Path(path)
        if p.exists():
            self.load(p)
        else:
            self.new(p)


def _write_document(doc: ProjectDocument, path: Path) -> None:
    # Write to a sibling temp file, then replace, so a failed save never
    # clobbers the previous document.
    tmp: Optional[Path] = None
    try:
        tmp = path.with_suffix(path.suffix + ".tmp")
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = doc.model_dump(mode="json")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)
    except (OSError, ValueError) as exc:
        if tmp is not None:
            try:
                tmp.unlink()
            except OSError:
                pass
        raise PersistenceError(f"Could not write project '{path}': {exc}") from exc
