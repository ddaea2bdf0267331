# app/services/settings_service.py
import logging
import os
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..models.assessment_models import DBSetting
from .errors import GradingNotConfiguredError, NotFoundError

logger = logging.getLogger(__name__)

OPENAI_API_KEY_SETTING = "openai_api_key"
OPENAI_MODEL_SETTING = "openai_model"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class SettingsService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        setting = self.db.get(DBSetting, key)
        return setting.value if setting else None

    def all(self) -> Dict[str, str]:
        return {s.key: s.value for s in self.db.query(DBSetting).all()}

    def put(self, key: str, value: str) -> DBSetting:
        setting = self.db.get(DBSetting, key)
        if setting:
            setting.value = value
        else:
            setting = DBSetting(key=key, value=value)
            self.db.add(setting)
        self.db.commit()
        self.db.refresh(setting)
        logger.info(f"Saved setting {key}")
        return setting

    def delete(self, key: str) -> None:
        setting = self.db.get(DBSetting, key)
        if not setting:
            raise NotFoundError(f"Setting not found: {key}")
        self.db.delete(setting)
        self.db.commit()
        logger.info(f"Deleted setting {key}")


class GradingConfig(BaseModel):
    """Credentials for the OpenAI calls, resolved once per request."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    api_key: str
    model: str


class GradingConfigProvider:
    """Resolves grading credentials: the settings store first, then the environment."""

    def __init__(self, settings: SettingsService):
        self.settings = settings

    def resolve(self) -> GradingConfig:
        api_key = self.settings.get(OPENAI_API_KEY_SETTING) or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise GradingNotConfiguredError("OpenAI API key not configured")

        model = (
            self.settings.get(OPENAI_MODEL_SETTING)
            or os.getenv("OPENAI_MODEL")
            or DEFAULT_OPENAI_MODEL
        )
        return GradingConfig(api_key=api_key, model=model)
