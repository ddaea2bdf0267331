# app/schemas/snapshot_schemas.py
"""Frozen shape of a test as it was when it got assigned.

Options come in two formats. Weighted options carry their own point value;
legacy options predate per-option points and only score the question's points
when they are the correct answer. Both are resolved into one of two option
classes when a snapshot is loaded, so scoring never branches on raw keys.
"""
import json
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .assessment_schemas import QuestionType


class LegacyOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""

    def points_for(self, question: "SnapshotQuestion") -> float:
        return question.points if self.id == question.correct_answer else 0


class WeightedOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    points: int = Field(ge=0)

    def points_for(self, question: "SnapshotQuestion") -> float:
        return self.points


MCQOption = Union[WeightedOption, LegacyOption]


def parse_option(raw) -> MCQOption:
    if isinstance(raw, (WeightedOption, LegacyOption)):
        return raw
    if not isinstance(raw, dict):
        raise ValueError("Each option must be an object")
    if raw.get("points") is not None:
        return WeightedOption.model_validate(raw)
    return LegacyOption.model_validate({k: v for k, v in raw.items() if k != "points"})


class SnapshotQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: QuestionType
    content: str
    options: Optional[List[MCQOption]] = None
    correct_answer: Optional[str] = None
    time_limit_seconds: Optional[int] = None
    points: int = Field(ge=0)
    order: int = 0

    @field_validator("options", mode="before")
    def resolve_options(cls, value):
        if value is None:
            return None
        # Older rows kept options as a JSON string
        if isinstance(value, str):
            value = json.loads(value)
        if not isinstance(value, list):
            raise ValueError("Options must be a list")
        return [parse_option(item) for item in value]

    def find_option(self, option_id: Optional[str]) -> Optional[MCQOption]:
        for option in self.options or []:
            if option.id == option_id:
                return option
        return None


class TestSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: Optional[str] = None
    requirements: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    duration_minutes: Optional[int] = None
    questions: List[SnapshotQuestion] = Field(default_factory=list)

    def get_question(self, question_id: str) -> Optional[SnapshotQuestion]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)
