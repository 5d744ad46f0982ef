"""
CampusNotes Backend: Archive Assembly Engine
==============================================

What:  Bundles the files of several notes into one ZIP download.
Who:   POST /api/notes/download-zip.

How:
    1. Reject an empty selection (EmptySelectionError).
    2. Resolve all ids with one IN query. Ids that match nothing are skipped;
       if none match at all → NotFoundError.
    3. For every note with a file key: presign a download URL, GET the bytes
       with httpx. Fetches run concurrently.
    4. Write each file as "<title>.pdf" into an in-memory ZIP and return it.
       Titles are flattened to a single path segment first.

Failure Semantics:
    All-or-nothing: one failed fetch (transport error, timeout, non-2xx
    status) aborts the whole archive with ObjectStoreError. Fetches still in
    flight are cancelled before the HTTP client closes. There is no partial
    archive.

Entry Names:
    Two notes with the same title map to the same entry name; the entry that
    is written last wins, so the archive holds one file per name.

Memory:
    Every selected file is held in memory until the archive is written. This
    is fine for a handful of lecture PDFs; large selections would need a
    streaming ZIP writer.
"""

import asyncio
import io
import logging
import re
import uuid
import zipfile
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campusnotes.config import settings
from campusnotes.exceptions import EmptySelectionError, NotFoundError, ObjectStoreError
from campusnotes.models import Note
from campusnotes.services.object_store import ObjectStoreGateway, object_store

logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "notes.zip"
ARCHIVE_MEDIA_TYPE = "application/zip"

_SEPARATORS = re.compile(r"[\\/]+")
_DOT_RUNS = re.compile(r"\.{2,}")


@dataclass
class NoteArchive:
    content: bytes
    entry_names: List[str]
    filename: str = ARCHIVE_FILENAME
    media_type: str = ARCHIVE_MEDIA_TYPE

    @property
    def size(self) -> int:
        return len(self.content)


def entry_name_for(title: str, extension: Optional[str] = None) -> str:
    """
    Archive entry name for a note: its title plus the configured extension.

    Path separators are flattened to "_" and "."/".." segments are dropped,
    so every entry lands at the root of the archive when extracted.
    """
    ext = settings.archive_entry_extension if extension is None else extension
    parts = [p for p in _SEPARATORS.split(title) if p and p not in (".", "..")]
    stem = _DOT_RUNS.sub(".", "_".join(parts)).strip(". ") or "note"
    return f"{stem}{ext}"


class ArchiveAssemblyEngine:

    def __init__(
        self,
        store: Optional[ObjectStoreGateway] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.object_store = store or object_store
        # Tests inject httpx.MockTransport here
        self._transport = transport
        self.timeout = timeout or settings.archive_fetch_timeout

    async def build_archive(
        self, db: AsyncSession, note_ids: Sequence[uuid.UUID]
    ) -> NoteArchive:
        """
        Build a ZIP of the files behind `note_ids`.

        Raises:
            EmptySelectionError: `note_ids` is empty.
            NotFoundError:       none of the ids resolve to a note.
            ObjectStoreError:    any presign or fetch failed.
        """
        unique_ids = list(dict.fromkeys(note_ids))
        if not unique_ids:
            raise EmptySelectionError(message="No notes selected", field="noteIds")

        result = await db.execute(select(Note).where(Note.id.in_(unique_ids)))
        notes = list(result.scalars().all())
        if not notes:
            raise NotFoundError(
                resource="notes",
                message="Notes not found",
                context={"requested": len(unique_ids)},
            )

        with_files = [n for n in notes if n.file_key]
        logger.info(
            "Building archive: %d requested, %d resolved, %d with files",
            len(unique_ids),
            len(notes),
            len(with_files),
        )

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self.timeout,
            follow_redirects=True,
        ) as client:
            tasks = [asyncio.ensure_future(self._fetch(client, note)) for note in with_files]
            try:
                fetched = await asyncio.gather(*tasks)
            except Exception:
                # Sibling fetches must not outlive the client
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        staged: Dict[str, bytes] = {}
        for name, data in fetched:
            staged[name] = data

        content = await asyncio.to_thread(self._zip, staged)
        logger.info("Archive ready: %d entries, %d bytes", len(staged), len(content))
        return NoteArchive(content=content, entry_names=list(staged))

    async def _fetch(self, client: httpx.AsyncClient, note: Note) -> Tuple[str, bytes]:
        url = await self.object_store.issue_download_location(note.file_key)
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Fetching file for note %s failed: %s", note.id, str(e))
            raise ObjectStoreError(
                message="Error creating ZIP",
                key=note.file_key,
                context={"note_id": str(note.id), "error": type(e).__name__},
            )
        return entry_name_for(note.title), response.content

    @staticmethod
    def _zip(entries: Dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, data in entries.items():
                archive.writestr(name, data)
        return buffer.getvalue()


archive_engine = ArchiveAssemblyEngine()
