from fastapi import APIRouter, HTTPException, Depends
import logging
from typing import Dict, Optional
from sqlalchemy.orm import Session
from ..schemas.assessment_schemas import SettingRead, SettingWrite
from ..services.errors import ServiceError
from ..services.settings_service import SettingsService
from ..database.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("")
def get_settings(key: Optional[str] = None, db: Session = Depends(get_db)) -> Dict[str, str]:
    try:
        settings = SettingsService(db)
        if key:
            value = settings.get(key)
            if value is None:
                raise HTTPException(status_code=404, detail="Setting not found")
            return {"key": key, "value": value}
        return settings.all()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching settings: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch settings")


@router.post("", response_model=SettingRead)
def save_setting(payload: SettingWrite, db: Session = Depends(get_db)):
    try:
        return SettingsService(db).put(payload.key, payload.value)
    except Exception as e:
        logger.error(f"Error saving setting: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save setting")


@router.delete("")
def delete_setting(key: str, db: Session = Depends(get_db)):
    try:
        SettingsService(db).delete(key)
        return {"message": "Setting deleted successfully"}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting setting: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete setting")
