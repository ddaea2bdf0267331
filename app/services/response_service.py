# app/services/response_service.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..models.assessment_models import DBAssignment, DBResponse, utcnow
from ..schemas.assessment_schemas import AssignmentStatus, BulkGradeItem, QuestionType
from ..schemas.snapshot_schemas import SnapshotQuestion
from .errors import InvalidTransitionError, NotFoundError
from .snapshot_service import SnapshotService

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def score_answer(question: SnapshotQuestion, answer: Optional[str]) -> Tuple[Optional[bool], Optional[float]]:
    """Provisional (is_correct, score) for an answer at the time it is given.

    Only multiple-choice questions are scored here; everything else waits for
    a grader. ``is_correct`` follows the designated correct option while the
    score follows the chosen option's own points, so the two may disagree.
    """
    if question.type != QuestionType.MCQ or not question.options:
        return None, None

    option = question.find_option(answer)
    if option is None:
        return False, 0

    return answer == question.correct_answer, option.points_for(question)


class ResponseService:
    def __init__(self, db: Session):
        self.db = db
        self.snapshots = SnapshotService(db)

    def _upsert_statement(self, values: dict):
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Response upsert is not supported on {dialect}")

        stmt = insert(DBResponse).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[DBResponse.assignment_id, DBResponse.question_id],
            set_={
                "answer": stmt.excluded.answer,
                "is_correct": stmt.excluded.is_correct,
                "score": stmt.excluded.score,
                "time_taken_seconds": stmt.excluded.time_taken_seconds,
                "answered_at": stmt.excluded.answered_at,
            },
        )

    def record_answer(
        self,
        assignment_id: str,
        question_id: str,
        answer: Optional[str],
        time_taken_seconds: Optional[int] = None,
    ) -> DBResponse:
        """Store a candidate's answer, scoring it against the assignment's snapshot.

        Completed assignments take no more answers. Repeated answers to the
        same question overwrite the earlier one through a single
        INSERT ... ON CONFLICT DO UPDATE.
        """
        assignment = self.db.get(DBAssignment, assignment_id)
        if not assignment:
            raise NotFoundError(f"Assignment not found: {assignment_id}")
        if assignment.status == AssignmentStatus.COMPLETED.value:
            raise InvalidTransitionError("Test already completed")

        snapshot = self.snapshots.resolve_snapshot(assignment)
        question = snapshot.get_question(question_id)
        if question is None:
            raise NotFoundError(f"Question not found: {question_id}")

        is_correct, score = score_answer(question, answer)

        stmt = self._upsert_statement(
            {
                "assignment_id": assignment_id,
                "question_id": question_id,
                "answer": answer,
                "is_correct": is_correct,
                "score": score,
                "time_taken_seconds": time_taken_seconds,
                "answered_at": utcnow(),
            }
        )
        try:
            self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        response = (
            self.db.query(DBResponse)
            .filter(DBResponse.assignment_id == assignment_id, DBResponse.question_id == question_id)
            .populate_existing()
            .one()
        )
        logger.info(f"Recorded answer for question {question_id} in assignment {assignment_id}")
        return response

    def get(self, response_id: str) -> DBResponse:
        response = self.db.get(DBResponse, response_id)
        if not response:
            raise NotFoundError(f"Response not found: {response_id}")
        return response

    def list_for_assignment(self, assignment_id: str) -> List[DBResponse]:
        return self.db.query(DBResponse).filter(DBResponse.assignment_id == assignment_id).all()

    def grade(self, response_id: str, score: float, grader_notes: Optional[str] = None) -> DBResponse:
        """Save a manual (or accepted AI-suggested) score."""
        response = self.get(response_id)
        response.score = score
        response.grader_notes = grader_notes
        self.db.commit()
        self.db.refresh(response)
        logger.info(f"Graded response {response_id} with score {score}")
        return response

    def bulk_save_grades(self, grades: List[BulkGradeItem]) -> int:
        """Apply several grades in one transaction; nothing is saved if any response is missing."""
        try:
            for item in grades:
                response = self.get(item.response_id)
                response.score = item.score
                response.grader_notes = item.grader_notes
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Saved {len(grades)} grades")
        return len(grades)
