# tests/conftest.py

"""
Pytest Fixtures - in-memory database, seeded question catalog and a
scripted LLM client shared by the worker, repository and API tests.

CATALOG REFERENCE:
- privacy:            questions 1 (forward, weight 1) and 2 (reversed, weight 2)
- market_competition: question 3
- ai_safety:          question 4
"""

import json
from typing import Callable, Dict, List, Optional, Sequence

import pytest
import pytest_asyncio

from database import init_engine, close_engine, create_tables, get_session
from llm import LLMClient, LLMResponse, ModelCallError
from repositories import QuestionRepository, SubmissionRepository
from processor import SubmissionStore, SubmissionQueue, SubmissionWorker
from processor.profile import OPENING_SENTENCE


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CATALOG = [
    {
        "id": 1,
        "category": "Privacy",
        "question_text": "Companies should need consent before sharing personal data.",
        "forward": True,
        "weight": 1.0,
    },
    {
        "id": 2,
        "category": "Privacy",
        "question_text": "Targeted advertising is a fair trade for free services.",
        "forward": False,
        "weight": 2.0,
    },
    {
        "id": 3,
        "category": "Market Competition",
        "question_text": "Dominant platforms should be broken up.",
        "forward": True,
        "weight": 1.0,
    },
    {
        "id": 4,
        "category": "AI Safety",
        "question_text": "Frontier AI models should be licensed before release.",
        "forward": True,
        "weight": 1.0,
    },
]

CATEGORIES = ["privacy", "market_competition", "ai_safety"]

SAMPLE_RESPONSES = {
    "1": {"rating": 4, "explanation": "Consent matters."},
    "2": {"rating": 2},
    "3": {"rating": 5},
    "4": {"rating": 3, "explanation": "Depends on the model."},
}


def make_reply(
    categories: Sequence[str] = CATEGORIES,
    band: str = "medium",
    protectionist=1,
    progressive=0,
    extra: Optional[Dict] = None,
) -> str:
    """A well-formed model reply: narrative followed by a fenced json block."""
    data = {category: band for category in categories}
    data["protectionist"] = protectionist
    data["progressive"] = progressive
    data.update(extra or {})
    return (
        f"{OPENING_SENTENCE} You value consent and careful oversight.\n\n"
        f"```json\n{json.dumps(data, indent=2)}\n```\n"
    )


class FakeLLMClient(LLMClient):
    """Scripted client: fixed or computed replies, optional failures by call number."""

    def __init__(
        self,
        reply: Optional[str] = None,
        reply_fn: Optional[Callable[[str], str]] = None,
        fail_on: Sequence[int] = (),
    ):
        super().__init__(api_key="test-key", model="fake-model")
        self.reply = reply if reply is not None else make_reply()
        self.reply_fn = reply_fn
        self.fail_on = set(fail_on)
        self.prompts: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def _complete(self, messages, max_tokens, temperature) -> LLMResponse:
        prompt = messages[-1]["content"]
        self.prompts.append(prompt)

        if self.calls in self.fail_on:
            raise ModelCallError(f"Simulated timeout on call {self.calls}")

        content = self.reply_fn(prompt) if self.reply_fn else self.reply
        return LLMResponse(
            content=content,
            model=self.model,
            usage={"input_tokens": len(prompt) // 4, "output_tokens": len(content) // 4},
            stop_reason="stop",
        )


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def database():
    """Fresh in-memory database for one test."""
    await close_engine()
    await init_engine(TEST_DATABASE_URL)
    await create_tables()
    yield
    await close_engine()


@pytest_asyncio.fixture
async def catalog(database):
    """Seed the question catalog."""
    async with get_session() as session:
        await QuestionRepository(session).upsert_many(CATALOG)
    return CATALOG


# =============================================================================
# WORKER FIXTURES
# =============================================================================

@pytest.fixture
def fake_client():
    return FakeLLMClient()


@pytest.fixture
def store():
    return SubmissionStore()


@pytest.fixture
def queue():
    return SubmissionQueue(queue_name="submissions")


@pytest.fixture
def worker(catalog, fake_client, store, queue):
    return SubmissionWorker(client=fake_client, store=store, queue=queue, batch_size=5, visibility_timeout=30)


@pytest.fixture
def enqueue(database, queue):
    """Create a pending submission and put it on the queue, like the intake endpoint."""

    async def _enqueue(responses: Optional[Dict] = None) -> str:
        responses = responses or SAMPLE_RESPONSES
        async with get_session() as session:
            submission = await SubmissionRepository(session).create(responses)
        await queue.send({
            "submission_id": submission.id,
            "responses": responses,
            "submitted_at": submission.submitted_at.isoformat(),
        })
        return submission.id

    return _enqueue


@pytest.fixture
def load_submission(database):
    """Read a submission back in a new session."""

    async def _load(submission_id: str):
        async with get_session() as session:
            return await SubmissionRepository(session).get(submission_id)

    return _load
