from fastapi import APIRouter, HTTPException, Depends
import logging
from typing import List
from sqlalchemy.orm import Session
from ..schemas.assessment_schemas import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentUpdate,
    CandidateQuestionView,
    CandidateTestView,
    ScoreSummary,
)
from ..services.assignment_service import AssignmentService
from ..services.errors import ServiceError
from ..services.scoring_service import ScoringService
from ..services.snapshot_service import SnapshotService
from ..database.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


@router.get("", response_model=List[AssignmentRead])
def list_assignments(db: Session = Depends(get_db)):
    try:
        return AssignmentService(db).list()
    except Exception as e:
        logger.error(f"Error fetching assignments: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch assignments")


@router.post("", response_model=AssignmentRead, status_code=201)
def create_assignment(payload: AssignmentCreate, db: Session = Depends(get_db)):
    """Assign a test to a candidate, freezing the test's current questions."""
    try:
        logger.info(f"Assigning test {payload.test_id} to candidate {payload.candidate_id}")
        return AssignmentService(db).assign(payload.candidate_id, payload.test_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating assignment: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create assignment")


@router.get("/link/{token}", response_model=CandidateTestView)
def get_assignment_by_link(token: str, db: Session = Depends(get_db)):
    """What the candidate sees: snapshot questions without the answer key."""
    try:
        assignment = AssignmentService(db).get_by_token(token)
        snapshot = SnapshotService(db).resolve_snapshot(assignment)

        questions = [
            CandidateQuestionView(
                id=q.id,
                type=q.type,
                content=q.content,
                options=[{"id": o.id, "text": o.text} for o in q.options] if q.options else None,
                time_limit_seconds=q.time_limit_seconds,
                points=q.points,
                order=q.order,
            )
            for q in snapshot.questions
        ]
        return CandidateTestView(
            assignment=AssignmentRead.model_validate(assignment),
            candidate_name=assignment.candidate.name,
            title=snapshot.title,
            description=snapshot.description,
            duration_minutes=snapshot.duration_minutes,
            questions=questions,
            answered_question_ids=[r.question_id for r in assignment.responses],
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching assignment by link: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch test")


@router.post("/link/{token}/start", response_model=AssignmentRead)
def start_assignment(token: str, db: Session = Depends(get_db)):
    try:
        return AssignmentService(db).start(token)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error starting test: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to start test")


@router.post("/link/{token}/complete", response_model=AssignmentRead)
def complete_assignment(token: str, db: Session = Depends(get_db)):
    try:
        return AssignmentService(db).complete(token)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error completing test: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to complete test")


@router.get("/{assignment_id}", response_model=AssignmentRead)
def get_assignment(assignment_id: str, db: Session = Depends(get_db)):
    try:
        return AssignmentService(db).get(assignment_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching assignment {assignment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch assignment")


@router.put("/{assignment_id}", response_model=AssignmentRead)
def update_assignment(assignment_id: str, update: AssignmentUpdate, db: Session = Depends(get_db)):
    """Administrative status/timestamp override; bypasses the start/complete checks."""
    try:
        return AssignmentService(db).update(assignment_id, update)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating assignment {assignment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update assignment")


@router.get("/{assignment_id}/score", response_model=ScoreSummary)
def get_assignment_score(assignment_id: str, db: Session = Depends(get_db)):
    try:
        return ScoringService(db).assignment_score(assignment_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error scoring assignment {assignment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to compute score")


@router.delete("/{assignment_id}")
def delete_assignment(assignment_id: str, db: Session = Depends(get_db)):
    try:
        AssignmentService(db).delete(assignment_id)
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting assignment {assignment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete assignment")
