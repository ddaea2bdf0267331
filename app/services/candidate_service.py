# app/services/candidate_service.py
import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models.assessment_models import DBAssignment, DBCandidate, DBTest
from ..schemas.assessment_schemas import (
    AssignmentStatus,
    CandidateCreate,
    CandidateStatus,
    CandidateUpdate,
    PublicTestStartResult,
)
from .assignment_service import AssignmentService
from .errors import InvalidTransitionError, NotFoundError

logger = logging.getLogger(__name__)


class CandidateService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, candidate: CandidateCreate) -> DBCandidate:
        db_candidate = DBCandidate(**candidate.model_dump(mode="json"))
        self.db.add(db_candidate)
        self.db.commit()
        self.db.refresh(db_candidate)
        logger.info(f"Created candidate {db_candidate.id}")
        return db_candidate

    def list(self, search: Optional[str] = None, status: Optional[str] = None) -> List[DBCandidate]:
        query = self.db.query(DBCandidate)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    DBCandidate.name.ilike(pattern),
                    DBCandidate.email.ilike(pattern),
                    DBCandidate.position.ilike(pattern),
                )
            )
        if status and status != "all":
            query = query.filter(DBCandidate.status == status)
        return query.order_by(DBCandidate.created_at.desc()).all()

    def get(self, candidate_id: str) -> DBCandidate:
        db_candidate = self.db.get(DBCandidate, candidate_id)
        if not db_candidate:
            raise NotFoundError(f"Candidate not found: {candidate_id}")
        return db_candidate

    def update(self, candidate_id: str, update: CandidateUpdate) -> DBCandidate:
        db_candidate = self.get(candidate_id)
        for key, value in update.model_dump(exclude_unset=True, mode="json").items():
            setattr(db_candidate, key, value)
        self.db.commit()
        self.db.refresh(db_candidate)
        return db_candidate

    def delete(self, candidate_id: str) -> None:
        db_candidate = self.get(candidate_id)
        self.db.delete(db_candidate)
        self.db.commit()
        logger.info(f"Deleted candidate {candidate_id}")

    def start_public_test(self, public_link: str, email: str) -> PublicTestStartResult:
        """Self registration through a test's public link.

        Finds or creates the candidate by email, then resumes their existing
        assignment or creates a new one.
        """
        db_test = self.db.query(DBTest).filter(DBTest.public_link == public_link).first()
        if not db_test:
            raise NotFoundError("Test not found")

        email = email.strip().lower()
        placeholder_name = email.split("@")[0]

        candidate = self.db.query(DBCandidate).filter(DBCandidate.email == email).first()
        is_new_candidate = candidate is None
        if candidate is None:
            candidate = self.create(
                CandidateCreate(name=placeholder_name, email=email, status=CandidateStatus.PENDING)
            )

        assignment = (
            self.db.query(DBAssignment)
            .filter(DBAssignment.candidate_id == candidate.id, DBAssignment.test_id == db_test.id)
            .first()
        )
        if assignment:
            if assignment.status == AssignmentStatus.COMPLETED.value:
                raise InvalidTransitionError("You have already completed this test")
            return PublicTestStartResult(
                assignment_link=assignment.unique_link,
                candidate_id=candidate.id,
                is_new_candidate=False,
                is_resuming=assignment.status == AssignmentStatus.IN_PROGRESS.value,
            )

        assignment = AssignmentService(self.db).assign(candidate.id, db_test.id)
        return PublicTestStartResult(
            assignment_link=assignment.unique_link,
            candidate_id=candidate.id,
            is_new_candidate=is_new_candidate or candidate.name == placeholder_name,
            is_resuming=False,
        )
