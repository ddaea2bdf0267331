# app/services/scoring_service.py
import logging
import math
from datetime import datetime, time
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..models.assessment_models import DBAssignment, DBResponse, DBTest
from ..schemas.assessment_schemas import (
    AssignmentReport,
    AssignmentStatus,
    CandidateRead,
    CandidateResult,
    OverallStats,
    QuestionAnalytics,
    QuestionStats,
    QuestionType,
    ReportFilters,
    ResponseRead,
    ScoreSummary,
    TestAnalytics,
)
from ..schemas.snapshot_schemas import SnapshotQuestion
from .errors import NotFoundError
from .snapshot_service import SnapshotService

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage_of(earned: float, total: float) -> int:
    return round_half_up(earned / total * 100) if total > 0 else 0


def response_points(response, question: Optional[SnapshotQuestion]) -> float:
    """Points a single response contributes. An explicit score always beats the correctness flag."""
    if response.score is not None:
        return response.score
    if response.is_correct and question is not None:
        return question.points
    return 0


def compute_score(questions: Iterable[SnapshotQuestion], responses: Iterable) -> ScoreSummary:
    """Roll up earned/total points from a snapshot's questions and the recorded responses.

    Nothing is cached: regrading a response changes the next computation.
    """
    by_id: Dict[str, SnapshotQuestion] = {q.id: q for q in questions}
    total = sum(q.points for q in by_id.values())
    earned = sum(response_points(r, by_id.get(r.question_id)) for r in responses)
    return ScoreSummary(earned=earned, total=total, percentage=percentage_of(earned, total))


class ScoringService:
    def __init__(self, db: Session):
        self.db = db
        self.snapshots = SnapshotService(db)

    def score_assignment(self, assignment: DBAssignment) -> ScoreSummary:
        snapshot = self.snapshots.resolve_snapshot(assignment)
        return compute_score(snapshot.questions, assignment.responses)

    def assignment_score(self, assignment_id: str) -> ScoreSummary:
        assignment = self.db.get(DBAssignment, assignment_id)
        if not assignment:
            raise NotFoundError(f"Assignment not found: {assignment_id}")
        return self.score_assignment(assignment)

    def report(self, filters: ReportFilters) -> List[AssignmentReport]:
        query = self.db.query(DBAssignment)

        if filters.assignment_id:
            query = query.filter(DBAssignment.id == filters.assignment_id)
        if filters.candidate_id:
            query = query.filter(DBAssignment.candidate_id == filters.candidate_id)
        if filters.test_id:
            query = query.filter(DBAssignment.test_id == filters.test_id)
        if filters.status and filters.status != "all":
            query = query.filter(DBAssignment.status == filters.status)
        if filters.date_from:
            query = query.filter(DBAssignment.completed_at >= datetime.combine(filters.date_from, time.min))
        if filters.date_to:
            query = query.filter(DBAssignment.completed_at <= datetime.combine(filters.date_to, time.max))

        reports = []
        for assignment in query.order_by(DBAssignment.assigned_at.desc()).all():
            reports.append(
                AssignmentReport(
                    id=assignment.id,
                    candidate_id=assignment.candidate_id,
                    test_id=assignment.test_id,
                    unique_link=assignment.unique_link,
                    status=assignment.status,
                    assigned_at=assignment.assigned_at,
                    started_at=assignment.started_at,
                    completed_at=assignment.completed_at,
                    candidate=CandidateRead.model_validate(assignment.candidate),
                    test_title=assignment.test.title,
                    score=self.score_assignment(assignment),
                )
            )
        return reports

    def test_analytics(self, test_id: str) -> TestAnalytics:
        """Per-candidate and per-question statistics over the completed assignments of a test."""
        db_test = self.db.get(DBTest, test_id)
        if not db_test:
            raise NotFoundError(f"Test not found: {test_id}")

        assignments = (
            self.db.query(DBAssignment)
            .filter(
                DBAssignment.test_id == test_id,
                DBAssignment.status == AssignmentStatus.COMPLETED.value,
            )
            .order_by(DBAssignment.completed_at.desc())
            .all()
        )

        if not assignments:
            return TestAnalytics(
                test_id=db_test.id,
                title=db_test.title,
                total_candidates=0,
                candidate_results=[],
                question_analytics=[],
                overall_stats=OverallStats(
                    average_score=0,
                    highest_score=0,
                    lowest_score=0,
                    completion_rate=0,
                    total_points=0,
                ),
            )

        # Question breakdown follows the most recently completed assignment's snapshot
        questions = self.snapshots.resolve_snapshot(assignments[0]).questions
        total_points = sum(q.points for q in questions)

        candidate_results = [
            CandidateResult(
                assignment_id=a.id,
                candidate=CandidateRead.model_validate(a.candidate),
                completed_at=a.completed_at,
                score=self.score_assignment(a),
                responses=[ResponseRead.model_validate(r) for r in a.responses],
            )
            for a in assignments
        ]
        candidate_results.sort(key=lambda cr: cr.score.percentage, reverse=True)

        question_analytics = [
            self._question_analytics(question, [r for a in assignments for r in a.responses])
            for question in questions
        ]

        percentages = [cr.score.percentage for cr in candidate_results]
        all_assignments = self.db.query(DBAssignment).filter(DBAssignment.test_id == test_id).count()

        return TestAnalytics(
            test_id=db_test.id,
            title=db_test.title,
            total_candidates=len(candidate_results),
            candidate_results=candidate_results,
            question_analytics=question_analytics,
            overall_stats=OverallStats(
                average_score=round_half_up(sum(percentages) / len(percentages)),
                highest_score=max(percentages),
                lowest_score=min(percentages),
                completion_rate=percentage_of(len(assignments), all_assignments),
                total_points=total_points,
            ),
        )

    def _question_analytics(self, question: SnapshotQuestion, responses: List[DBResponse]) -> QuestionAnalytics:
        answered = [r for r in responses if r.question_id == question.id]
        scores = [response_points(r, question) for r in answered]
        times = [r.time_taken_seconds for r in answered if r.time_taken_seconds is not None]

        average = sum(scores) / len(scores) if scores else 0
        if question.type == QuestionType.MCQ:
            correct = sum(1 for r in answered if r.is_correct is True)
            incorrect = sum(1 for r in answered if r.is_correct is False)
        else:
            correct = incorrect = 0

        return QuestionAnalytics(
            question_id=question.id,
            type=question.type,
            content=question.content,
            points=question.points,
            stats=QuestionStats(
                total_responses=len(answered),
                answered_count=sum(1 for r in answered if r.answer is not None),
                average_score=round(average, 2),
                max_score=max(scores) if scores else 0,
                min_score=min(scores) if scores else 0,
                average_percentage=percentage_of(average, question.points),
                correct_count=correct,
                incorrect_count=incorrect,
                average_time_seconds=round_half_up(sum(times) / len(times)) if times else 0,
            ),
        )
