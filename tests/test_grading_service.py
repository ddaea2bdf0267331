from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from app.services.assignment_service import AssignmentService
from app.services.errors import GradingError, GradingNotConfiguredError, NotGradableError
from app.services.grading_service import GradingService
from app.services.response_service import ResponseService
from app.services.settings_service import GradingConfig, GradingConfigProvider, SettingsService

from factories import GOOD_REPLY, FakeOpenAI, freetext_question, mcq_question, timed_question

CONFIG = GradingConfig(api_key="sk-test", model="gpt-test")


@pytest.fixture
def answered(db, make_test, make_candidate):
    db_test = make_test([mcq_question(), freetext_question(), timed_question(), freetext_question(content="Blank")])
    assignment = AssignmentService(db).assign(make_candidate().id, db_test.id)
    mcq, essay, timed, blank = [q.id for q in db_test.questions]
    service = ResponseService(db)
    return SimpleNamespace(
        assignment=assignment,
        mcq=service.record_answer(assignment.id, mcq, "A"),
        essay=service.record_answer(assignment.id, essay, "We paged the on-call and rolled back."),
        timed=service.record_answer(assignment.id, timed, "def reverse(head): ..."),
        blank=service.record_answer(assignment.id, blank, "   "),
    )


def test_grade_response_clamps_and_rounds_score(db, answered):
    client = FakeOpenAI([GOOD_REPLY])

    grade = GradingService(db, CONFIG, client=client).grade_response(answered.essay.id)

    assert grade.suggested_score == 5
    assert grade.fit_analysis == "Solid fit."
    call = client.chat.completions.calls[0]
    assert call["model"] == "gpt-test"
    assert "Hiring a backend engineer" in call["messages"][1]["content"]
    assert "Ada Lovelace" in call["messages"][1]["content"]


@pytest.mark.parametrize("which", ["mcq", "blank"])
def test_grade_response_rejects_ungradable(db, answered, which):
    service = GradingService(db, CONFIG, client=FakeOpenAI([]))

    with pytest.raises(NotGradableError):
        service.grade_response(getattr(answered, which).id)


def test_parse_grade_rejects_bad_structure(db):
    service = GradingService(db, CONFIG, client=FakeOpenAI([]))

    with pytest.raises(GradingError):
        service.parse_grade('{"suggested_score": "lots"}', 5)
    with pytest.raises(GradingError):
        service.parse_grade("", 5)


def test_bulk_grade_collects_failures_without_stopping(db, answered):
    client = FakeOpenAI([RuntimeError("rate limited"), GOOD_REPLY])

    result = GradingService(db, CONFIG, client=client).bulk_grade(answered.assignment.id)

    assert result.summary.total == 2
    assert result.summary.successful == 1
    assert result.summary.failed == 1
    by_id = {r.response_id: r for r in result.results}
    assert set(by_id) == {answered.essay.id, answered.timed.id}
    failed = [r for r in result.results if not r.success]
    assert failed[0].error == "rate limited"
    succeeded = [r for r in result.results if r.success]
    assert succeeded[0].grade.suggested_score <= 5


def test_config_prefers_settings_store(db, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-env")
    settings = SettingsService(db)

    assert GradingConfigProvider(settings).resolve() == GradingConfig(api_key="sk-env", model="gpt-env")

    settings.put("openai_api_key", "sk-store")
    settings.put("openai_model", "gpt-store")
    assert GradingConfigProvider(settings).resolve() == GradingConfig(api_key="sk-store", model="gpt-store")


def test_config_without_key(db, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(GradingNotConfiguredError):
        GradingConfigProvider(SettingsService(db)).resolve()


@pytest.mark.parametrize("suggested, expected", [(2.5, 3), (3.5, 4), (0.49, 0), (-2, 0), (9, 5)])
def test_parse_grade_rounds_half_up_then_clamps(db, suggested, expected):
    service = GradingService(db, CONFIG, client=FakeOpenAI([]))
    reply = (
        f'{{"suggested_score": {suggested}, "strengths": "s", '
        '"weaknesses": "w", "fit_analysis": "f"}'
    )

    assert service.parse_grade(reply, 5).suggested_score == expected


def test_grading_config_is_immutable():
    with pytest.raises(ValidationError):
        CONFIG.model = "other"
