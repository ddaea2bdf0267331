# app/services/grading_service.py
import json
import logging
import re
from typing import List, Optional

from openai import OpenAI
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..models.assessment_models import DBAssignment, DBResponse
from ..schemas.assessment_schemas import (
    AIGrade,
    AIGradeResult,
    BulkAIGradeResponse,
    BulkAIGradeSummary,
    QuestionType,
)
from ..schemas.snapshot_schemas import SnapshotQuestion, TestSnapshot
from .errors import GradingError, NotFoundError, NotGradableError
from .scoring_service import round_half_up
from .settings_service import GradingConfig
from .snapshot_service import SnapshotService

logger = logging.getLogger(__name__)

GRADABLE_TYPES = (QuestionType.FREETEXT, QuestionType.TIMED)

_CODE_FENCE = re.compile(r"```(?:json)?\s*")


def is_gradable(question: Optional[SnapshotQuestion], response: DBResponse) -> bool:
    return (
        question is not None
        and question.type in GRADABLE_TYPES
        and bool(response.answer and response.answer.strip())
    )


class GradingService:
    """Suggests scores for free-text and timed answers with an OpenAI chat model.

    Suggestions are returned, not stored; a grader accepts them through
    ResponseService.grade.
    """

    def __init__(self, db: Session, config: GradingConfig, client=None):
        self.db = db
        self.config = config
        self.client = client or OpenAI(api_key=config.api_key)
        self.snapshots = SnapshotService(db)

    def build_prompt(self, snapshot: TestSnapshot, question: SnapshotQuestion, candidate_name: str, answer: str) -> str:
        return f"""Evaluate a candidate's answer to an assessment question.

Context:
- Test Purpose/Requirements: {snapshot.requirements or 'General assessment'}
- Test Title: {snapshot.title}
- Question Type: {question.type.value}
- Question: {question.content}
- Maximum Points: {question.points}
- Candidate Name: {candidate_name}
- Candidate Answer: {answer}

Return your evaluation as JSON with exactly these keys:
{{
  "suggested_score": <number between 0 and {question.points}>,
  "strengths": "<what the candidate did well>",
  "weaknesses": "<what was missing or unclear>",
  "fit_analysis": "<2-3 sentences about fit for the role>"
}}

Return ONLY valid JSON, no markdown."""

    def parse_grade(self, text: str, max_points: int) -> AIGrade:
        cleaned = _CODE_FENCE.sub("", text or "").strip()
        if not cleaned:
            raise GradingError("No response from AI model")
        try:
            data = json.loads(cleaned)
            score = float(data["suggested_score"])
            data["suggested_score"] = max(0, min(max_points, round_half_up(score)))
            return AIGrade.model_validate(data)
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise GradingError(f"Invalid AI response structure: {e}") from e

    def _grade(self, snapshot: TestSnapshot, question: SnapshotQuestion, candidate_name: str, answer: str) -> AIGrade:
        completion = self.client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": "You are an experienced HR interviewer and assessment grader."},
                {"role": "user", "content": self.build_prompt(snapshot, question, candidate_name, answer)},
            ],
            temperature=0.5,
        )
        return self.parse_grade(completion.choices[0].message.content, question.points)

    def grade_response(self, response_id: str) -> AIGrade:
        response = self.db.get(DBResponse, response_id)
        if not response:
            raise NotFoundError(f"Response not found: {response_id}")

        snapshot = self.snapshots.resolve_snapshot(response.assignment)
        question = snapshot.get_question(response.question_id)
        if question is None:
            raise NotFoundError("Question not found in snapshot")
        if not is_gradable(question, response):
            raise NotGradableError("AI grading is only available for answered freetext and timed questions")

        logger.info(f"AI grading response {response_id}")
        return self._grade(snapshot, question, response.assignment.candidate.name, response.answer)

    def bulk_grade(self, assignment_id: str) -> BulkAIGradeResponse:
        """Grade every gradable response of an assignment one by one.

        Each item carries its own success flag; a failure is recorded and the
        loop moves on.
        """
        assignment = self.db.get(DBAssignment, assignment_id)
        if not assignment:
            raise NotFoundError(f"Assignment not found: {assignment_id}")

        snapshot = self.snapshots.resolve_snapshot(assignment)
        gradable = [
            (r, snapshot.get_question(r.question_id))
            for r in assignment.responses
            if is_gradable(snapshot.get_question(r.question_id), r)
        ]

        results: List[AIGradeResult] = []
        for response, question in gradable:
            try:
                grade = self._grade(snapshot, question, assignment.candidate.name, response.answer)
                results.append(
                    AIGradeResult(
                        response_id=response.id,
                        question_id=question.id,
                        question_content=question.content[:100],
                        success=True,
                        grade=grade,
                    )
                )
            except Exception as e:
                logger.error(f"Error grading response {response.id}: {str(e)}")
                results.append(
                    AIGradeResult(
                        response_id=response.id,
                        question_id=question.id,
                        question_content=question.content[:100],
                        success=False,
                        error=str(e) or "Unknown error",
                    )
                )

        successful = sum(1 for r in results if r.success)
        logger.info(f"Bulk AI grading for assignment {assignment_id}: {successful}/{len(results)} succeeded")
        return BulkAIGradeResponse(
            results=results,
            summary=BulkAIGradeSummary(total=len(results), successful=successful, failed=len(results) - successful),
        )
