# app/services/assignment_service.py
import logging
import secrets
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.assessment_models import DBAssignment, DBCandidate, DBTest, utcnow
from ..schemas.assessment_schemas import (
    AssignmentStatus,
    AssignmentUpdate,
    CandidateSummary,
    InstanceProgress,
    TestInstance,
)
from .errors import ConflictError, InvalidTransitionError, NotFoundError
from .snapshot_service import SnapshotService, serialize_snapshot

logger = logging.getLogger(__name__)


def generate_access_token() -> str:
    return secrets.token_hex(16)


class AssignmentService:
    def __init__(self, db: Session):
        self.db = db
        self.snapshots = SnapshotService(db)

    def assign(self, candidate_id: str, test_id: str) -> DBAssignment:
        """Bind a candidate to a test and freeze the test's current content."""
        existing = (
            self.db.query(DBAssignment)
            .filter(DBAssignment.candidate_id == candidate_id, DBAssignment.test_id == test_id)
            .first()
        )
        if existing:
            raise ConflictError("Test already assigned to this candidate")

        if not self.db.get(DBCandidate, candidate_id):
            raise NotFoundError(f"Candidate not found: {candidate_id}")
        if not self.db.get(DBTest, test_id):
            raise NotFoundError(f"Test not found: {test_id}")

        snapshot = self.snapshots.create_snapshot(test_id)

        assignment = DBAssignment(
            candidate_id=candidate_id,
            test_id=test_id,
            unique_link=generate_access_token(),
            status=AssignmentStatus.NOT_STARTED.value,
            test_snapshot=serialize_snapshot(snapshot),
        )
        self.db.add(assignment)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent assign for the same pair
            self.db.rollback()
            raise ConflictError("Test already assigned to this candidate")

        self.db.refresh(assignment)
        logger.info(f"Assigned test {test_id} to candidate {candidate_id} as {assignment.id}")
        return assignment

    def get(self, assignment_id: str) -> DBAssignment:
        assignment = self.db.get(DBAssignment, assignment_id)
        if not assignment:
            raise NotFoundError(f"Assignment not found: {assignment_id}")
        return assignment

    def get_by_token(self, token: str) -> DBAssignment:
        assignment = self.db.query(DBAssignment).filter(DBAssignment.unique_link == token).first()
        if not assignment:
            raise NotFoundError("Test not found")
        return assignment

    def list(self) -> List[DBAssignment]:
        return self.db.query(DBAssignment).order_by(DBAssignment.assigned_at.desc()).all()

    def start(self, token: str) -> DBAssignment:
        """Move not_started -> in_progress.

        The status check and the write are one conditional UPDATE, so of two
        concurrent starts exactly one matches a row.
        """
        updated = (
            self.db.query(DBAssignment)
            .filter(
                DBAssignment.unique_link == token,
                DBAssignment.status == AssignmentStatus.NOT_STARTED.value,
            )
            .update(
                {
                    DBAssignment.status: AssignmentStatus.IN_PROGRESS.value,
                    DBAssignment.started_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        self.db.commit()

        assignment = self.get_by_token(token)
        if updated == 0:
            raise InvalidTransitionError("Test already started")

        self.db.refresh(assignment)
        logger.info(f"Assignment {assignment.id} started")
        return assignment

    def complete(self, token: str) -> DBAssignment:
        """Mark the assignment completed. Completing twice keeps the first completion time."""
        assignment = self.get_by_token(token)

        if assignment.status == AssignmentStatus.COMPLETED.value:
            logger.info(f"Assignment {assignment.id} already completed, nothing to do")
            return assignment

        self.db.query(DBAssignment).filter(
            DBAssignment.id == assignment.id,
            DBAssignment.status != AssignmentStatus.COMPLETED.value,
        ).update(
            {
                DBAssignment.status: AssignmentStatus.COMPLETED.value,
                DBAssignment.completed_at: utcnow(),
            },
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"Assignment {assignment.id} completed")
        return assignment

    def update(self, assignment_id: str, update: AssignmentUpdate) -> DBAssignment:
        """Administrative override of status and timestamps.

        Unlike start/complete this skips the status checks. Moving into
        in_progress or completed fills the matching timestamp if it is unset.
        """
        assignment = self.get(assignment_id)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)

        status = changes.pop("status", None)
        if status is not None:
            assignment.status = status.value
            if status == AssignmentStatus.IN_PROGRESS and not (assignment.started_at or "started_at" in changes):
                assignment.started_at = utcnow()
            if status == AssignmentStatus.COMPLETED and not (assignment.completed_at or "completed_at" in changes):
                assignment.completed_at = utcnow()
        for key, value in changes.items():
            setattr(assignment, key, value)

        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"Updated assignment {assignment_id}: {assignment.status}")
        return assignment

    def list_for_test(self, test_id: str) -> List[TestInstance]:
        """Every assignment of a test with answered/total progress.

        The total counts the questions the candidate was given, not the live test.
        """
        if not self.db.get(DBTest, test_id):
            raise NotFoundError(f"Test not found: {test_id}")

        assignments = (
            self.db.query(DBAssignment)
            .filter(DBAssignment.test_id == test_id)
            .order_by(DBAssignment.assigned_at.desc())
            .all()
        )
        return [
            TestInstance(
                id=a.id,
                status=a.status,
                assigned_at=a.assigned_at,
                started_at=a.started_at,
                completed_at=a.completed_at,
                unique_link=a.unique_link,
                candidate=CandidateSummary.model_validate(a.candidate),
                progress=InstanceProgress(
                    answered_questions=len(a.responses),
                    total_questions=len(self.snapshots.resolve_snapshot(a).questions),
                ),
            )
            for a in assignments
        ]

    def delete(self, assignment_id: str) -> None:
        assignment = self.get(assignment_id)
        self.db.delete(assignment)
        self.db.commit()
        logger.info(f"Deleted assignment {assignment_id}")
