from fastapi import APIRouter, HTTPException, Depends
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from ..schemas.assessment_schemas import (
    BulkDeleteResult,
    BulkTagRequest,
    BulkTagResult,
    GeneratedTest,
    QuestionCreate,
    QuestionIds,
    QuestionListItem,
    QuestionRead,
    QuestionUpdate,
    TestCreate,
    TestGenerateRequest,
    TestInstance,
    TestRead,
    TestUpdate,
)
from ..services.assignment_service import AssignmentService
from ..services.errors import ServiceError
from ..services.generation_service import GenerationService
from ..services.settings_service import GradingConfigProvider, SettingsService
from ..services.test_service import TestService
from ..database.database import get_db

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tests"])


def get_generation_service(db: Session = Depends(get_db)) -> GenerationService:
    config = GradingConfigProvider(SettingsService(db)).resolve()
    return GenerationService(db, config)


@router.get("/tests", response_model=List[TestRead])
def list_tests(db: Session = Depends(get_db)):
    try:
        return TestService(db).list_tests()
    except Exception as e:
        logger.error(f"Error fetching tests: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch tests")


@router.post("/tests", response_model=TestRead, status_code=201)
def create_test(test: TestCreate, db: Session = Depends(get_db)):
    """Create a test together with its questions."""
    try:
        logger.info(f"Creating test '{test.title}' with {len(test.questions)} questions")
        return TestService(db).create_test(test)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating test: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create test")


@router.post("/tests/generate", response_model=GeneratedTest)
def generate_test(
    payload: TestGenerateRequest,
    generator: GenerationService = Depends(get_generation_service),
):
    """Draft a test with the AI model; `save` stores the draft as a new test."""
    try:
        return generator.generate_test(payload.prompt, save=payload.save)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error generating test: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to generate test")


@router.get("/tests/{test_id}", response_model=TestRead)
def get_test(test_id: str, db: Session = Depends(get_db)):
    try:
        return TestService(db).get_test(test_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching test {test_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch test")


@router.put("/tests/{test_id}", response_model=TestRead)
def update_test(test_id: str, update: TestUpdate, db: Session = Depends(get_db)):
    try:
        return TestService(db).update_test(test_id, update)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating test {test_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update test")


@router.delete("/tests/{test_id}")
def delete_test(test_id: str, db: Session = Depends(get_db)):
    try:
        TestService(db).delete_test(test_id)
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting test {test_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete test")


@router.get("/tests/{test_id}/instances", response_model=List[TestInstance])
def list_test_instances(test_id: str, db: Session = Depends(get_db)):
    """Assignments of a test with how far each candidate got."""
    try:
        return AssignmentService(db).list_for_test(test_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching test instances: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch test instances")


@router.post("/tests/{test_id}/public-link", response_model=TestRead)
def enable_public_link(test_id: str, db: Session = Depends(get_db)):
    try:
        return TestService(db).set_public_link(test_id, enabled=True)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error enabling public link: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to enable public link")


@router.delete("/tests/{test_id}/public-link", response_model=TestRead)
def disable_public_link(test_id: str, db: Session = Depends(get_db)):
    try:
        return TestService(db).set_public_link(test_id, enabled=False)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error disabling public link: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to disable public link")


@router.post("/tests/{test_id}/questions", response_model=QuestionRead, status_code=201)
def add_question(test_id: str, question: QuestionCreate, db: Session = Depends(get_db)):
    try:
        return TestService(db).add_question(test_id, question)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error adding question: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to add question")


@router.get("/questions", response_model=List[QuestionListItem])
def list_questions(
    search: Optional[str] = None,
    type: Optional[str] = None,
    test_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        return TestService(db).list_questions(search=search, question_type=type, test_id=test_id)
    except Exception as e:
        logger.error(f"Error fetching questions: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch questions")


@router.post("/questions/bulk-delete", response_model=BulkDeleteResult)
def bulk_delete_questions(payload: QuestionIds, db: Session = Depends(get_db)):
    try:
        logger.info(f"Bulk deleting {len(payload.question_ids)} questions")
        return BulkDeleteResult(deleted_count=TestService(db).bulk_delete_questions(payload.question_ids))
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error bulk deleting questions: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete questions")


@router.post("/questions/bulk-tag", response_model=BulkTagResult)
def bulk_tag_questions(payload: BulkTagRequest, db: Session = Depends(get_db)):
    try:
        updated = TestService(db).bulk_tag_questions(payload.question_ids, payload.add_tags, payload.remove_tags)
        return BulkTagResult(updated_count=updated)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error bulk updating tags: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update tags")


@router.get("/questions/{question_id}", response_model=QuestionListItem)
def get_question(question_id: str, db: Session = Depends(get_db)):
    try:
        return TestService(db).get_question(question_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching question {question_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch question")


@router.put("/questions/{question_id}", response_model=QuestionRead)
def update_question(question_id: str, question: QuestionUpdate, db: Session = Depends(get_db)):
    """Edit a live question. Existing assignments keep their snapshot."""
    try:
        return TestService(db).update_question(question_id, question)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating question {question_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update question")


@router.delete("/questions/{question_id}")
def delete_question(question_id: str, db: Session = Depends(get_db)):
    try:
        TestService(db).delete_question(question_id)
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting question {question_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete question")
