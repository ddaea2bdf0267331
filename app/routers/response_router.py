# app/routers/response_router.py
from fastapi import APIRouter, HTTPException, Depends
import logging
from sqlalchemy.orm import Session
from ..schemas.assessment_schemas import (
    AIGrade,
    BulkAIGradeRequest,
    BulkAIGradeResponse,
    BulkGradeRequest,
    GradeUpdate,
    ResponseRead,
    ResponseSubmit,
)
from ..services.errors import ServiceError
from ..services.grading_service import GradingService
from ..services.response_service import ResponseService
from ..services.settings_service import GradingConfigProvider, SettingsService
from ..database.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/responses", tags=["responses"])


def get_grading_service(db: Session = Depends(get_db)) -> GradingService:
    config = GradingConfigProvider(SettingsService(db)).resolve()
    return GradingService(db, config)


@router.post("", response_model=ResponseRead, status_code=201)
def submit_response(payload: ResponseSubmit, db: Session = Depends(get_db)):
    """Record (or overwrite) a candidate's answer to one question."""
    try:
        return ResponseService(db).record_answer(
            payload.assignment_id,
            payload.question_id,
            payload.answer,
            payload.time_taken_seconds,
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error saving response: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save response")


@router.put("/{response_id}", response_model=ResponseRead)
def save_grade(response_id: str, grade: GradeUpdate, db: Session = Depends(get_db)):
    try:
        return ResponseService(db).grade(response_id, grade.score, grade.grader_notes)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error saving grade: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save grade")


@router.post("/bulk-save-grades")
def bulk_save_grades(payload: BulkGradeRequest, db: Session = Depends(get_db)):
    try:
        updated = ResponseService(db).bulk_save_grades(payload.grades)
        return {"success": True, "updated": updated}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error bulk saving grades: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save grades")


@router.post("/{response_id}/ai-grade", response_model=AIGrade)
def ai_grade_response(response_id: str, grading: GradingService = Depends(get_grading_service)):
    try:
        return grading.grade_response(response_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error generating AI grade: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to generate AI grade")


@router.post("/bulk-ai-grade", response_model=BulkAIGradeResponse)
def bulk_ai_grade(payload: BulkAIGradeRequest, grading: GradingService = Depends(get_grading_service)):
    try:
        return grading.bulk_grade(payload.assignment_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error bulk generating AI grades: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to generate AI grades")
