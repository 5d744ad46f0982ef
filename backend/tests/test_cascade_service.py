"""
CampusNotes Backend: Cascade Deletion Tests
=============================================

What we test:
    ✅ Regulation delete removes every branch, subject, note, ledger row and file
    ✅ Branch and subject deletes stay inside their subtree
    ✅ A failure while deleting subjects rolls everything back, touches no file
    ✅ Deleting the same root twice → NotFoundError
    ✅ A failed file deletion is counted, not raised
"""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from campusnotes.exceptions import DatabaseError, NotFoundError
from campusnotes.models import Branch, FacultyUpload, Note, Regulation, Subject
from campusnotes.services.cascade_service import CascadeDeletionEngine, HierarchyKind


async def _count(session, model, *criteria) -> int:
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return (await session.execute(stmt)).scalar_one()


@pytest.fixture
def engine(object_store):
    return CascadeDeletionEngine(store=object_store)


async def _build_tree(seed):
    """R20 → {CSE → {DS, OS}, ECE → {Signals}} with one note per subject, plus R23."""
    reg = await seed.regulation("R20")
    other_reg = await seed.regulation("R23")
    faculty = await seed.faculty()

    cse = await seed.branch(reg, "Computer Science", "CSE")
    ece = await seed.branch(reg, "Electronics", "ECE")
    other_branch = await seed.branch(other_reg, "Computer Science", "CSE")

    ds = await seed.subject(cse, "Data Structures", "CS201")
    os_ = await seed.subject(cse, "Operating Systems", "CS301", semester="5")
    signals = await seed.subject(ece, "Signals", "EC201")
    other_subject = await seed.subject(other_branch, "Data Structures", "CS201")

    notes = [
        await seed.note(ds, cse, reg, faculty, title="DS Unit 1"),
        await seed.note(os_, cse, reg, faculty, title="OS Unit 1"),
        await seed.note(signals, ece, reg, faculty, title="Signals Unit 1"),
    ]
    survivor = await seed.note(other_subject, other_branch, other_reg, faculty, title="Keep me")

    return {
        "reg": reg,
        "cse": cse,
        "ece": ece,
        "ds": ds,
        "os": os_,
        "signals": signals,
        "faculty": faculty,
        "notes": notes,
        "survivor": survivor,
        "other_reg": other_reg,
    }


class TestRegulationCascade:

    @pytest.mark.asyncio
    async def test_removes_whole_subtree(self, db_session, seed, engine, object_store):
        tree = await _build_tree(seed)
        reg_id = tree["reg"].id
        keys = [n.file_key for n in tree["notes"]]

        summary = await engine.delete_hierarchy(db_session, HierarchyKind.REGULATION, reg_id)

        assert summary.branches == 2
        assert summary.subjects == 3
        assert summary.notes == 3
        assert summary.blob_failures == 0
        assert summary.message.startswith("Regulation and all related")

        assert await _count(db_session, Regulation, Regulation.id == reg_id) == 0
        assert await _count(db_session, Branch, Branch.regulation_id == reg_id) == 0
        assert await _count(db_session, Note, Note.regulation_id == reg_id) == 0
        assert sorted(object_store.deleted) == sorted(keys)

    @pytest.mark.asyncio
    async def test_leaves_other_regulations_alone(self, db_session, seed, engine, object_store):
        tree = await _build_tree(seed)
        survivor_id = tree["survivor"].id
        survivor_key = tree["survivor"].file_key

        await engine.delete_hierarchy(db_session, HierarchyKind.REGULATION, tree["reg"].id)

        assert await _count(db_session, Regulation) == 1
        assert await _count(db_session, Note) == 1
        assert await _count(db_session, FacultyUpload) == 1
        assert (await db_session.get(Note, survivor_id)) is not None
        assert survivor_key in object_store.blobs

    @pytest.mark.asyncio
    async def test_ledger_keeps_only_surviving_notes(self, db_session, seed, engine):
        tree = await _build_tree(seed)
        faculty_id = tree["faculty"].id
        survivor_id = tree["survivor"].id

        await engine.delete_hierarchy(db_session, HierarchyKind.REGULATION, tree["reg"].id)

        rows = await db_session.execute(
            select(FacultyUpload.note_id).where(FacultyUpload.faculty_id == faculty_id)
        )
        assert list(rows.scalars().all()) == [survivor_id]


class TestBranchAndSubjectCascade:

    @pytest.mark.asyncio
    async def test_branch_delete(self, db_session, seed, engine, object_store):
        tree = await _build_tree(seed)
        cse_id, ece_id = tree["cse"].id, tree["ece"].id
        signals_key = tree["notes"][2].file_key

        summary = await engine.delete_hierarchy(db_session, HierarchyKind.BRANCH, cse_id)

        assert (summary.branches, summary.subjects, summary.notes) == (0, 2, 2)
        assert summary.message == "Branch and related subjects/notes deleted successfully."
        assert await _count(db_session, Branch, Branch.id == cse_id) == 0
        assert await _count(db_session, Subject, Subject.branch_id == cse_id) == 0
        assert await _count(db_session, Subject, Subject.branch_id == ece_id) == 1
        assert signals_key not in object_store.deleted
        assert len(object_store.deleted) == 2

    @pytest.mark.asyncio
    async def test_subject_delete(self, db_session, seed, engine, object_store):
        tree = await _build_tree(seed)
        ds_id = tree["ds"].id
        ds_key = tree["notes"][0].file_key

        summary = await engine.delete_hierarchy(db_session, HierarchyKind.SUBJECT, ds_id)

        assert (summary.branches, summary.subjects, summary.notes) == (0, 0, 1)
        assert await _count(db_session, Subject, Subject.id == ds_id) == 0
        assert await _count(db_session, Note) == 3
        assert object_store.deleted == [ds_key]

    @pytest.mark.asyncio
    async def test_empty_subject(self, db_session, seed, engine, object_store):
        reg = await seed.regulation()
        branch = await seed.branch(reg)
        subject = await seed.subject(branch)

        summary = await engine.delete_hierarchy(db_session, HierarchyKind.SUBJECT, subject.id)

        assert summary.notes == 0
        assert object_store.deleted == []


class TestCascadeFailures:

    @pytest.mark.asyncio
    async def test_failure_mid_cascade_rolls_back(self, db_session, seed, engine, object_store, monkeypatch):
        tree = await _build_tree(seed)
        reg_id = tree["reg"].id
        original = engine._delete_rows

        async def failing_delete_rows(db, model, ids):
            if model is Subject:
                raise OperationalError("DELETE FROM subjects", {}, Exception("disk I/O error"))
            return await original(db, model, ids)

        monkeypatch.setattr(engine, "_delete_rows", failing_delete_rows)

        with pytest.raises(DatabaseError):
            await engine.delete_hierarchy(db_session, HierarchyKind.REGULATION, reg_id)

        assert await _count(db_session, Regulation, Regulation.id == reg_id) == 1
        assert await _count(db_session, Branch, Branch.regulation_id == reg_id) == 2
        assert await _count(db_session, Subject) == 4
        assert await _count(db_session, Note) == 4
        assert await _count(db_session, FacultyUpload) == 4
        assert object_store.deleted == []

    @pytest.mark.asyncio
    async def test_second_delete_is_not_found(self, db_session, seed, engine):
        reg = await seed.regulation()
        reg_id = reg.id

        await engine.delete_hierarchy(db_session, HierarchyKind.REGULATION, reg_id)
        with pytest.raises(NotFoundError):
            await engine.delete_hierarchy(db_session, HierarchyKind.REGULATION, reg_id)

    @pytest.mark.asyncio
    async def test_unknown_root(self, db_session, engine):
        with pytest.raises(NotFoundError) as exc_info:
            await engine.delete_hierarchy(db_session, HierarchyKind.BRANCH, uuid.uuid4())
        assert exc_info.value.context["resource"] == "branch"

    @pytest.mark.asyncio
    async def test_blob_failure_is_counted_not_raised(self, db_session, seed, engine, object_store):
        tree = await _build_tree(seed)
        failing_key = tree["notes"][0].file_key
        object_store.fail_keys.add(failing_key)

        summary = await engine.delete_hierarchy(
            db_session, HierarchyKind.REGULATION, tree["reg"].id
        )

        assert summary.blob_failures == 1
        assert summary.notes == 3
        assert failing_key not in object_store.deleted
        assert len(object_store.deleted) == 2
        assert await _count(db_session, Note, Note.file_key == failing_key) == 0
