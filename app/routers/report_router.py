# app/routers/report_router.py
from fastapi import APIRouter, HTTPException, Depends
import logging
from typing import List
from sqlalchemy.orm import Session
from ..schemas.assessment_schemas import AssignmentReport, ReportFilters, TestAnalytics
from ..services.errors import ServiceError
from ..services.scoring_service import ScoringService
from ..database.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("", response_model=List[AssignmentReport])
def get_reports(filters: ReportFilters = Depends(), db: Session = Depends(get_db)):
    """Assignments matching the filters, each with its score computed from its snapshot."""
    try:
        return ScoringService(db).report(filters)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching reports: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch reports")


@router.get("/test-analytics/{test_id}", response_model=TestAnalytics)
def get_test_analytics(test_id: str, db: Session = Depends(get_db)):
    try:
        logger.info(f"Computing analytics for test {test_id}")
        return ScoringService(db).test_analytics(test_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error fetching test analytics: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch test analytics")
