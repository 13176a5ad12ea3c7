"""
API Routes - Survey intake, processing trigger and result lookup

Endpoints:
- Health Check
- Submissions (intake, lookup)
- Questions (catalog)
- Processing (run one worker invocation)
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config import settings
from database import get_session
from repositories import QuestionRepository, SubmissionRepository
from processor import SubmissionStore, SubmissionQueue, SubmissionWorker, StoreWriteError
from utils import logger

router = APIRouter()


class ResponseItem(BaseModel):
    """One answer in a submission."""
    rating: int
    explanation: Optional[str] = None


class SubmissionRequest(BaseModel):
    """Survey submission body."""
    responses: Dict[str, ResponseItem] = Field(default_factory=dict)


def get_store() -> SubmissionStore:
    return SubmissionStore()


def get_queue() -> SubmissionQueue:
    return SubmissionQueue()


def get_worker() -> SubmissionWorker:
    return SubmissionWorker()


# ============================================================
# Health Check
# ============================================================
@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "queue": settings.QUEUE_NAME,
    }


# ============================================================
# Submissions
# ============================================================
@router.post("/submissions")
async def create_submission(
    request: SubmissionRequest,
    store: SubmissionStore = Depends(get_store),
    queue: SubmissionQueue = Depends(get_queue),
):
    """
    Accept a survey submission.

    Saves it as `pending` and enqueues it for the worker. A failed enqueue
    is logged only; the submission is already stored.
    """
    if not request.responses:
        raise HTTPException(status_code=400, detail="Invalid responses data")

    for question_id, item in request.responses.items():
        if not settings.RATING_SCALE_MIN <= item.rating <= settings.RATING_SCALE_MAX:
            raise HTTPException(
                status_code=400,
                detail=f"Rating for question {question_id} must be between "
                       f"{settings.RATING_SCALE_MIN} and {settings.RATING_SCALE_MAX}",
            )

    responses = {key: item.model_dump(exclude_none=True) for key, item in request.responses.items()}

    try:
        submission = await store.create_submission(responses)
    except StoreWriteError as e:
        logger.error(f"Submission error: {e}")
        raise HTTPException(status_code=500, detail="Failed to save submission")

    try:
        msg_id = await queue.send({
            "submission_id": submission["id"],
            "responses": responses,
            "submitted_at": datetime.now().isoformat(),
        })
        logger.info(f"Message queued: {msg_id} for submission {submission['id']}")
    except Exception as e:
        logger.error(f"Failed to add to queue: {e}")

    return {
        "success": True,
        "submission_id": submission["id"],
        "message": "Survey submitted successfully",
    }


@router.get("/submissions/{submission_id}")
async def get_submission(submission_id: str):
    """Get a submission's status and, once processed, its summary and scores."""
    async with get_session() as session:
        submission = await SubmissionRepository(session).get(submission_id)

    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")

    return {
        "id": submission.id,
        "status": submission.status,
        "submitted_at": submission.submitted_at.isoformat() if submission.submitted_at else None,
        "processed_at": submission.processed_at.isoformat() if submission.processed_at else None,
        "summary": submission.summary,
        "scores": submission.scores,
        "error_message": submission.error_message,
    }


# ============================================================
# Questions
# ============================================================
@router.get("/questions")
async def list_questions():
    """List the question catalog ordered by id."""
    async with get_session() as session:
        questions = await QuestionRepository(session).get_catalog()

    return {
        "questions": [
            {
                "id": q.id,
                "category": q.category,
                "question_text": q.question_text,
                "forward": q.forward,
                "weight": q.weight,
            }
            for q in questions
        ],
        "total": len(questions),
    }


# ============================================================
# Processing
# ============================================================
@router.post("/process")
async def process_submissions(worker: SubmissionWorker = Depends(get_worker)):
    """Run one worker invocation over the submissions queue."""
    try:
        result = await worker.run_batch()
    except Exception as e:
        logger.exception(f"Processing run failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(e)},
        )

    return result.to_dict()
