"""
CampusNotes Backend: Cascade Deletion Engine
==============================================

What:  Deletes a Regulation, Branch or Subject together with everything below
       it (branches, subjects, notes, ledger entries) and the notes' files.
Who:   DELETE /api/admin/{regulations,branches,subjects}/{id}.

Procedure:
    1. Load the root; missing → NotFoundError.
    2. Compute the descendant id sets with one batch query per level:
         regulation → branches(regulation) → subjects(branch ∈ branches)
         notes: regulation = root  OR branch ∈ branches  OR subject ∈ subjects
         branch     → subjects(branch) ; notes: branch = root OR subject ∈ subjects
         subject    → notes(subject)
    3. Collect the file keys of those notes.
    4. In one transaction: delete ledger rows and notes, then subjects, then
       branches, then the root. Children go before parents so no statement
       ever leaves a row pointing at a deleted parent.
    5. After the commit, delete the collected files best-effort.

Failure Semantics:
    Any error inside step 4 rolls the whole transaction back and no file is
    touched; database errors surface as DatabaseError (500). File deletion
    failures in step 5 are logged and counted in the summary, never raised:
    by then the metadata is final and an orphaned file is harmless.

Concurrency:
    No application lock. Two overlapping cascades rely on the database's
    transaction isolation; the loser typically sees NotFoundError.
"""

import enum
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Set, Type

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campusnotes.database import atomic
from campusnotes.exceptions import DatabaseError, NotFoundError
from campusnotes.models import Branch, Note, Regulation, Subject
from campusnotes.services.ledger_service import LedgerService, ledger_service
from campusnotes.services.object_store import (
    ObjectStoreGateway,
    delete_objects_best_effort,
    object_store,
)

logger = logging.getLogger(__name__)


class HierarchyKind(str, enum.Enum):
    REGULATION = "regulation"
    BRANCH = "branch"
    SUBJECT = "subject"


_ROOT_MODELS = {
    HierarchyKind.REGULATION: Regulation,
    HierarchyKind.BRANCH: Branch,
    HierarchyKind.SUBJECT: Subject,
}


@dataclass
class DescendantSet:
    """Everything a cascade will remove, computed before any write."""

    branch_ids: Set[uuid.UUID] = field(default_factory=set)
    subject_ids: Set[uuid.UUID] = field(default_factory=set)
    note_ids: Set[uuid.UUID] = field(default_factory=set)
    file_keys: List[str] = field(default_factory=list)


@dataclass
class CascadeSummary:
    kind: HierarchyKind
    root_id: uuid.UUID
    branches: int
    subjects: int
    notes: int
    blob_failures: int = 0

    @property
    def message(self) -> str:
        parts = {
            HierarchyKind.REGULATION: "Regulation and all related branches, subjects, and notes",
            HierarchyKind.BRANCH: "Branch and related subjects/notes",
            HierarchyKind.SUBJECT: "Subject and related notes",
        }
        return f"{parts[self.kind]} deleted successfully."


class CascadeDeletionEngine:

    def __init__(
        self,
        store: Optional[ObjectStoreGateway] = None,
        ledger: Optional[LedgerService] = None,
    ):
        self.object_store = store or object_store
        self.ledger = ledger or ledger_service

    async def delete_hierarchy(
        self,
        db: AsyncSession,
        kind: HierarchyKind,
        root_id: uuid.UUID,
    ) -> CascadeSummary:
        """
        Delete `root_id` of `kind` and all of its descendants.

        Raises:
            NotFoundError: the root does not exist (including a second delete
                           of the same id).
            DatabaseError: the metadata transaction failed and was rolled back.
        """
        model = _ROOT_MODELS[kind]

        try:
            async with atomic(db):
                root = await db.get(model, root_id)
                if root is None:
                    raise NotFoundError(resource=kind.value, resource_id=str(root_id))

                descendants = await self._collect(db, kind, root_id)
                logger.info(
                    "Cascade delete %s %s: %d branches, %d subjects, %d notes",
                    kind.value,
                    root_id,
                    len(descendants.branch_ids),
                    len(descendants.subject_ids),
                    len(descendants.note_ids),
                )

                await self.ledger.forget_notes(db, descendants.note_ids)
                await self._delete_rows(db, Note, descendants.note_ids)
                await self._delete_rows(db, Subject, descendants.subject_ids)
                await self._delete_rows(db, Branch, descendants.branch_ids)
                await db.delete(root)
                await db.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Cascade delete of %s %s rolled back: %s", kind.value, root_id, str(e)
            )
            raise DatabaseError(
                message=f"Error during cascade delete of {kind.value}",
                context={"kind": kind.value, "root_id": str(root_id), "error": type(e).__name__},
            )

        # Metadata is committed; files can no longer be referenced.
        failures = await delete_objects_best_effort(self.object_store, descendants.file_keys)

        return CascadeSummary(
            kind=kind,
            root_id=root_id,
            branches=len(descendants.branch_ids),
            subjects=len(descendants.subject_ids),
            notes=len(descendants.note_ids),
            blob_failures=failures,
        )

    async def _collect(
        self, db: AsyncSession, kind: HierarchyKind, root_id: uuid.UUID
    ) -> DescendantSet:
        found = DescendantSet()

        if kind is HierarchyKind.REGULATION:
            found.branch_ids = await self._ids(
                db, select(Branch.id).where(Branch.regulation_id == root_id)
            )
            if found.branch_ids:
                found.subject_ids = await self._ids(
                    db, select(Subject.id).where(Subject.branch_id.in_(list(found.branch_ids)))
                )
            note_conditions = [Note.regulation_id == root_id]
            if found.branch_ids:
                note_conditions.append(Note.branch_id.in_(list(found.branch_ids)))
        elif kind is HierarchyKind.BRANCH:
            found.subject_ids = await self._ids(
                db, select(Subject.id).where(Subject.branch_id == root_id)
            )
            note_conditions = [Note.branch_id == root_id]
        else:
            note_conditions = [Note.subject_id == root_id]

        # Notes filed under a descendant subject but a stale branch/regulation
        # would otherwise survive as orphans.
        if found.subject_ids:
            note_conditions.append(Note.subject_id.in_(list(found.subject_ids)))

        rows = (
            await db.execute(select(Note.id, Note.file_key).where(or_(*note_conditions)))
        ).all()
        found.note_ids = {note_id for note_id, _ in rows}
        found.file_keys = [key for _, key in rows if key]
        return found

    @staticmethod
    async def _ids(db: AsyncSession, stmt) -> Set[uuid.UUID]:
        return set((await db.execute(stmt)).scalars().all())

    async def _delete_rows(
        self, db: AsyncSession, model: Type, ids: Set[uuid.UUID]
    ) -> None:
        """One batch DELETE for a level of the hierarchy."""
        if not ids:
            return
        await db.execute(
            delete(model)
            .where(model.id.in_(list(ids)))
            .execution_options(synchronize_session="fetch")
        )


cascade_engine = CascadeDeletionEngine()
