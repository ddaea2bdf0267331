# app/main.py
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from dotenv import load_dotenv
from app.database.database import init_db
from app.services.errors import (
    ConflictError,
    GenerationError,
    GradingError,
    GradingNotConfiguredError,
    InvalidTransitionError,
    NotFoundError,
    NotGradableError,
    QuestionsInUseError,
    ServiceError,
)
import os

# Import routers
from app.routers.assignment_router import router as assignment_router
from app.routers.candidate_router import router as candidate_router
from app.routers.report_router import router as report_router
from app.routers.response_router import router as response_router
from app.routers.settings_router import router as settings_router
from app.routers.test_router import router as test_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

ERROR_STATUS = {
    NotFoundError: 404,
    ConflictError: 409,
    InvalidTransitionError: 400,
    NotGradableError: 400,
    QuestionsInUseError: 400,
    GradingError: 502,
    GenerationError: 502,
    GradingNotConfiguredError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if not os.getenv("OPENAI_API_KEY"):
        logger.warning("OPENAI_API_KEY not found in environment variables; AI grading and test generation need it in settings")
    yield


app = FastAPI(title="Candidate Assessment API", lifespan=lifespan)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    status_code = ERROR_STATUS.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    content = {"detail": str(exc)}
    if isinstance(exc, QuestionsInUseError):
        content["questions_in_use"] = exc.questions_in_use
    return JSONResponse(status_code=status_code, content=content)


# CORS middleware configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(test_router)
app.include_router(candidate_router)
app.include_router(assignment_router)
app.include_router(response_router)
app.include_router(report_router)
app.include_router(settings_router)

@app.get("/")
async def root():
    return {"message": "Candidate Assessment API is running"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
