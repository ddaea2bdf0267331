# app/schemas/assessment_schemas.py
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionType(str, Enum):
    MCQ = "mcq"
    FREETEXT = "freetext"
    TIMED = "timed"


class AssignmentStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CandidateStatus(str, Enum):
    ACTIVE = "active"
    HIRED = "hired"
    REJECTED = "rejected"
    PENDING = "pending"


MIN_TIME_LIMIT_SECONDS = 10


# --- Questions -------------------------------------------------------------

class OptionInput(BaseModel):
    id: str = Field(..., min_length=1)
    text: str
    points: Optional[int] = Field(default=None, ge=0)


class QuestionBase(BaseModel):
    type: QuestionType
    content: str = Field(..., min_length=1)
    options: Optional[List[OptionInput]] = None
    correct_answer: Optional[str] = None
    time_limit_seconds: Optional[int] = None
    points: int = Field(default=1, ge=0)
    tags: List[str] = Field(default_factory=list)
    order: Optional[int] = None

    @model_validator(mode="after")
    def check_type_fields(self):
        if self.type == QuestionType.MCQ:
            if not self.options:
                raise ValueError("Multiple-choice questions need at least one option")
            ids = [option.id for option in self.options]
            if len(ids) != len(set(ids)):
                raise ValueError("Option ids must be unique")
            if self.correct_answer not in ids:
                raise ValueError("correct_answer must name one of the option ids")
        if self.type == QuestionType.TIMED:
            if self.time_limit_seconds is None or self.time_limit_seconds < MIN_TIME_LIMIT_SECONDS:
                raise ValueError(f"Timed questions need time_limit_seconds >= {MIN_TIME_LIMIT_SECONDS}")
        return self


class QuestionCreate(QuestionBase):
    pass


class QuestionUpdate(QuestionBase):
    pass


class QuestionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    test_id: str
    type: QuestionType = Field(validation_alias="question_type")
    content: str
    options: Optional[List[OptionInput]] = None
    correct_answer: Optional[str] = None
    time_limit_seconds: Optional[int] = None
    points: int
    tags: List[str] = Field(default_factory=list)
    order: int


class QuestionIds(BaseModel):
    question_ids: List[str] = Field(..., min_length=1)


class BulkTagRequest(QuestionIds):
    add_tags: List[str] = Field(default_factory=list)
    remove_tags: List[str] = Field(default_factory=list)


class BulkDeleteResult(BaseModel):
    success: bool = True
    deleted_count: int


class BulkTagResult(BaseModel):
    success: bool = True
    updated_count: int


# --- Tests -----------------------------------------------------------------

class TestCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    requirements: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    questions: List[QuestionCreate] = Field(default_factory=list)


class TestUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    requirements: Optional[str] = None
    tags: Optional[List[str]] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)


class TestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    requirements: Optional[str] = None
    tags: List[str]
    duration_minutes: Optional[int] = None
    public_link: Optional[str] = None
    created_at: datetime
    questions: List[QuestionRead] = Field(default_factory=list)


class TestSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    tags: List[str]


class QuestionListItem(QuestionRead):
    test: TestSummary


class PublicTestInfo(BaseModel):
    title: str
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    question_count: int


class TestGenerateRequest(BaseModel):
    prompt: str
    save: bool = False

    @field_validator("prompt")
    def require_prompt(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Prompt is required")
        return v


class GeneratedTest(BaseModel):
    test: TestCreate
    message: str
    saved_test_id: Optional[str] = None


# --- Candidates ------------------------------------------------------------

class CandidateCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str
    phone: Optional[str] = None
    position: Optional[str] = None
    status: CandidateStatus = CandidateStatus.ACTIVE
    notes: Optional[str] = None

    @field_validator("email")
    def normalize_email(cls, v):
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("A valid email is required")
        return v


class CandidateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    status: Optional[CandidateStatus] = None
    notes: Optional[str] = None

    @field_validator("email")
    def normalize_email(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("A valid email is required")
        return v


class CandidateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    position: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime


class PublicTestStart(BaseModel):
    email: str

    @field_validator("email")
    def normalize_email(cls, v):
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("A valid email is required")
        return v


class PublicTestStartResult(BaseModel):
    assignment_link: str
    candidate_id: str
    is_new_candidate: bool
    is_resuming: bool


# --- Assignments -----------------------------------------------------------

class AssignmentCreate(BaseModel):
    candidate_id: str
    test_id: str


class AssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    candidate_id: str
    test_id: str
    unique_link: str
    status: AssignmentStatus
    assigned_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AssignmentUpdate(BaseModel):
    """Manual override by an administrator, e.g. to reopen a test."""
    status: Optional[AssignmentStatus] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CandidateSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class InstanceProgress(BaseModel):
    answered_questions: int
    total_questions: int


class TestInstance(BaseModel):
    id: str
    status: AssignmentStatus
    assigned_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    unique_link: str
    candidate: CandidateSummary
    progress: InstanceProgress


class CandidateQuestionView(BaseModel):
    """Question as shown to the candidate: no answer key, no option weights."""
    id: str
    type: QuestionType
    content: str
    options: Optional[List[dict]] = None
    time_limit_seconds: Optional[int] = None
    points: int
    order: int


class CandidateTestView(BaseModel):
    assignment: AssignmentRead
    candidate_name: str
    title: str
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    questions: List[CandidateQuestionView]
    answered_question_ids: List[str]


# --- Responses -------------------------------------------------------------

class ResponseSubmit(BaseModel):
    assignment_id: str
    question_id: str
    answer: Optional[str] = None
    time_taken_seconds: Optional[int] = Field(default=None, ge=0)


class ResponseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    assignment_id: str
    question_id: str
    answer: Optional[str] = None
    is_correct: Optional[bool] = None
    score: Optional[float] = None
    time_taken_seconds: Optional[int] = None
    grader_notes: Optional[str] = None


class GradeUpdate(BaseModel):
    score: float = Field(..., ge=0)
    grader_notes: Optional[str] = None


class BulkGradeItem(GradeUpdate):
    response_id: str


class BulkGradeRequest(BaseModel):
    grades: List[BulkGradeItem] = Field(..., min_length=1)


class BulkAIGradeRequest(BaseModel):
    assignment_id: str


# --- Scoring & reports -----------------------------------------------------

class ScoreSummary(BaseModel):
    earned: float
    total: int
    percentage: int


class AssignmentReport(AssignmentRead):
    candidate: CandidateRead
    test_title: str
    score: ScoreSummary


class ReportFilters(BaseModel):
    candidate_id: Optional[str] = None
    test_id: Optional[str] = None
    status: Optional[str] = None
    assignment_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class CandidateResult(BaseModel):
    assignment_id: str
    candidate: CandidateRead
    completed_at: Optional[datetime] = None
    score: ScoreSummary
    responses: List[ResponseRead]


class QuestionStats(BaseModel):
    total_responses: int
    answered_count: int
    average_score: float
    max_score: float
    min_score: float
    average_percentage: int
    correct_count: int
    incorrect_count: int
    average_time_seconds: int


class QuestionAnalytics(BaseModel):
    question_id: str
    type: QuestionType
    content: str
    points: int
    stats: QuestionStats


class OverallStats(BaseModel):
    average_score: int
    highest_score: int
    lowest_score: int
    completion_rate: int
    total_points: int


class TestAnalytics(BaseModel):
    test_id: str
    title: str
    total_candidates: int
    candidate_results: List[CandidateResult]
    question_analytics: List[QuestionAnalytics]
    overall_stats: OverallStats


# --- AI grading ------------------------------------------------------------

class AIGrade(BaseModel):
    suggested_score: int
    strengths: str
    weaknesses: str
    fit_analysis: str


class AIGradeResult(BaseModel):
    response_id: str
    question_id: str
    question_content: str
    success: bool
    grade: Optional[AIGrade] = None
    error: Optional[str] = None


class BulkAIGradeSummary(BaseModel):
    total: int
    successful: int
    failed: int


class BulkAIGradeResponse(BaseModel):
    results: List[AIGradeResult]
    summary: BulkAIGradeSummary


# --- Settings --------------------------------------------------------------

class SettingWrite(BaseModel):
    key: str = Field(..., min_length=1)
    value: str


class SettingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: str
