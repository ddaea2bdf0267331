from fastapi import APIRouter, HTTPException, Depends
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from ..schemas.assessment_schemas import (
    CandidateCreate,
    CandidateRead,
    CandidateUpdate,
    PublicTestInfo,
    PublicTestStart,
    PublicTestStartResult,
)
from ..services.candidate_service import CandidateService
from ..services.errors import ServiceError
from ..services.test_service import TestService
from ..database.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["candidates"])


@router.get("/candidates", response_model=List[CandidateRead])
def list_candidates(search: Optional[str] = None, status: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        return CandidateService(db).list(search=search, status=status)
    except Exception as e:
        logger.error(f"Error fetching candidates: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch candidates")


@router.post("/candidates", response_model=CandidateRead, status_code=201)
def create_candidate(candidate: CandidateCreate, db: Session = Depends(get_db)):
    try:
        return CandidateService(db).create(candidate)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating candidate: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create candidate")


@router.get("/candidates/{candidate_id}", response_model=CandidateRead)
def get_candidate(candidate_id: str, db: Session = Depends(get_db)):
    try:
        return CandidateService(db).get(candidate_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching candidate {candidate_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch candidate")


@router.put("/candidates/{candidate_id}", response_model=CandidateRead)
def update_candidate(candidate_id: str, update: CandidateUpdate, db: Session = Depends(get_db)):
    try:
        return CandidateService(db).update(candidate_id, update)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating candidate {candidate_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update candidate")


@router.delete("/candidates/{candidate_id}")
def delete_candidate(candidate_id: str, db: Session = Depends(get_db)):
    try:
        CandidateService(db).delete(candidate_id)
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting candidate {candidate_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete candidate")


@router.get("/public-test/{public_link}", response_model=PublicTestInfo)
def get_public_test(public_link: str, db: Session = Depends(get_db)):
    try:
        return TestService(db).get_public_test(public_link)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching public test: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch test")


@router.post("/public-test/{public_link}/start", response_model=PublicTestStartResult)
def start_public_test(public_link: str, payload: PublicTestStart, db: Session = Depends(get_db)):
    """Register through a public test link and get an assignment link back."""
    try:
        logger.info(f"Public test start for link {public_link}")
        return CandidateService(db).start_public_test(public_link, payload.email)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error starting public test: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to start test")
