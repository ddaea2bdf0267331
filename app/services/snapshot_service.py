# app/services/snapshot_service.py
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..models.assessment_models import DBAssignment, DBQuestion, DBTest
from ..schemas.snapshot_schemas import SnapshotQuestion, TestSnapshot
from .errors import NotFoundError, SnapshotDecodeError

logger = logging.getLogger(__name__)


def serialize_snapshot(snapshot: TestSnapshot) -> str:
    return snapshot.model_dump_json()


def deserialize_snapshot(payload: str) -> TestSnapshot:
    try:
        return TestSnapshot.model_validate_json(payload)
    except ValidationError as e:
        raise SnapshotDecodeError(f"Invalid test snapshot: {e.error_count()} error(s)") from e


def snapshot_question(question: DBQuestion) -> SnapshotQuestion:
    return SnapshotQuestion(
        id=question.id,
        type=question.question_type,
        content=question.content,
        options=question.options,
        correct_answer=question.correct_answer,
        time_limit_seconds=question.time_limit_seconds,
        points=question.points,
        order=question.order,
    )


class SnapshotService:
    def __init__(self, db: Session):
        self.db = db

    def create_snapshot(self, test_id: str) -> TestSnapshot:
        """Freeze the test as it is right now."""
        db_test = self.db.query(DBTest).filter(DBTest.id == test_id).first()
        if not db_test:
            raise NotFoundError(f"Test not found: {test_id}")

        questions = (
            self.db.query(DBQuestion)
            .filter(DBQuestion.test_id == test_id)
            .order_by(DBQuestion.order.asc())
            .all()
        )

        return TestSnapshot(
            title=db_test.title,
            description=db_test.description,
            requirements=db_test.requirements,
            tags=list(db_test.tags or []),
            duration_minutes=db_test.duration_minutes,
            questions=[snapshot_question(q) for q in questions],
        )

    def resolve_snapshot(self, assignment: DBAssignment) -> TestSnapshot:
        """Return the snapshot an assignment is scored against.

        The stored snapshot wins whenever it decodes and holds questions.
        Otherwise the live test is used, which may not match what the
        candidate actually saw.
        """
        if assignment.test_snapshot:
            try:
                snapshot = deserialize_snapshot(assignment.test_snapshot)
                if snapshot.questions:
                    return snapshot
                logger.warning(f"Assignment {assignment.id} has an empty snapshot, falling back to live test")
            except SnapshotDecodeError as e:
                logger.warning(f"Assignment {assignment.id} snapshot unreadable ({e}), falling back to live test")
        else:
            logger.warning(f"Assignment {assignment.id} has no snapshot, falling back to live test")

        return self.create_snapshot(assignment.test_id)
