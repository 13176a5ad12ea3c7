"""
Submission Worker - turns queued survey submissions into scored profiles.

Per invocation (called by the scheduler or the /process endpoint):
1. Load the question catalog once and derive the category list
2. Claim up to `batch_size` queue items, one at a time
3. For each item:
   - validate the payload (malformed items are deleted and skipped)
   - mark the submission `processing` (already `processed`: delete the item, done)
   - compute category scores, render the prompt, call the model in a thread
   - extend the claim
   - parse the reply and merge the computed scores
   - persist `processed` with summary and scores
   - delete the queue item
4. On any per-item error: mark `failed` and delete the item, each best-effort

Per-item errors never fail the invocation. Only a failure to load the
catalog (store unreachable, misconfiguration) propagates.
"""
import asyncio
import json
from typing import Optional, List, Mapping, Any, Tuple

from loguru import logger

from config import settings
from constants import OutcomeStatus, SubmissionStatus
from llm import get_client, LLMClient, set_llm_context
from processor.scoring import CatalogQuestion, compute_scores, derive_categories, parse_responses
from processor.profile import ProfileResult, format_answers, render_prompt, parse_reply
from .adapters import SubmissionStore, SubmissionQueue, QueueClaimError, QueueDeleteError
from .models import QueueItem, FailureCleanup, ItemOutcome, BatchResult


class MalformedItemError(ValueError):
    """Raised when a queue payload lacks submission_id or responses."""
    pass


def validate_payload(item: QueueItem) -> Tuple[str, Mapping[str, Any]]:
    """
    Check a claimed item's payload shape.

    Returns:
        (submission_id, responses)

    Raises:
        MalformedItemError: If either field is missing or the wrong shape
    """
    payload = item.payload
    if not isinstance(payload, dict):
        raise MalformedItemError(f"Payload is not an object: {payload!r}")

    submission_id = payload.get("submission_id")
    responses = payload.get("responses")
    if not submission_id or not responses:
        raise MalformedItemError(f"Message missing required fields: {sorted(payload.keys())}")
    if not isinstance(responses, dict):
        raise MalformedItemError(f"Responses must be an object, got {type(responses).__name__}")

    return str(submission_id), responses


class SubmissionWorker:
    """
    Queue-backed processor for survey submissions.

    Strictly sequential: one claimed item at a time, each external call
    awaited before the next.
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        store: Optional[SubmissionStore] = None,
        queue: Optional[SubmissionQueue] = None,
        batch_size: Optional[int] = None,
        visibility_timeout: Optional[int] = None,
    ):
        """
        Initialize worker.

        Args:
            client: LLM client instance (creates default if not provided)
            store: Submission store adapter
            queue: Queue adapter for the submissions channel
            batch_size: Max items per invocation (default settings.WORKER_BATCH_SIZE)
            visibility_timeout: Claim duration in seconds (default settings.QUEUE_VISIBILITY_TIMEOUT)
        """
        self.client = client or get_client()
        self.store = store or SubmissionStore()
        self.queue = queue or SubmissionQueue()
        self.batch_size = batch_size or settings.WORKER_BATCH_SIZE
        self.visibility_timeout = visibility_timeout or settings.QUEUE_VISIBILITY_TIMEOUT
        self.scale_min = settings.RATING_SCALE_MIN
        self.scale_max = settings.RATING_SCALE_MAX

    async def run_batch(self) -> BatchResult:
        """
        Process up to `batch_size` queue items.

        Returns:
            BatchResult with one outcome per claimed, well-formed item
        """
        questions = await self.store.get_questions()
        categories = derive_categories(questions)
        logger.info(f"Found {len(categories)} unique categories: {', '.join(categories)}")

        batch = BatchResult()

        for _ in range(self.batch_size):
            try:
                items = await self.queue.claim(n=1, visibility_timeout=self.visibility_timeout)
            except QueueClaimError as e:
                logger.error(f"Stopping batch: {e}")
                break

            if not items:
                logger.info("No messages in queue")
                break

            item = items[0]
            outcome = await self.process_item(item, questions, categories)
            if outcome is None:
                batch.discarded += 1
            else:
                batch.results.append(outcome)

        logger.info(
            f"Batch complete: {batch.succeeded} processed, {batch.failed} failed, "
            f"{batch.discarded} discarded"
        )
        return batch

    async def process_item(
        self,
        item: QueueItem,
        questions: List[CatalogQuestion],
        categories: List[str],
    ) -> Optional[ItemOutcome]:
        """
        Drive one claimed item to a terminal state.

        Returns:
            The item outcome, or None if the item was malformed and discarded
        """
        try:
            submission_id, responses = validate_payload(item)
        except MalformedItemError as e:
            logger.error(f"Discarding message {item.msg_id}: {e}")
            try:
                await self.queue.delete(item.msg_id)
            except QueueDeleteError as delete_error:
                logger.error(f"Failed to delete invalid message: {delete_error}")
            return None

        logger.info(f"Processing submission {submission_id} from queue (msg {item.msg_id}, read {item.read_ct})")
        set_llm_context(task_type="profile_summary", submission_id=submission_id)

        try:
            status = await self.store.get_status(submission_id)
            if status == SubmissionStatus.PROCESSED.value:
                logger.info(f"Submission {submission_id} already processed, dropping redelivered message")
                return await self._finalize(item, submission_id)

            if not await self.store.mark_processing(submission_id):
                logger.info(f"Submission {submission_id} finished elsewhere while claimed, dropping message")
                return await self._finalize(item, submission_id)

            profile = await self.build_profile(questions, categories, responses, msg_id=item.msg_id)
            await self._extend_claim(item)

            stored = await self.store.mark_processed(
                submission_id,
                summary=profile.summary,
                scores=profile.scorecard.to_dict(),
            )
            if not stored:
                logger.warning(f"Submission {submission_id} was processed by another worker, keeping that result")

        except Exception as e:
            logger.error(f"Error processing submission {submission_id}: {e}")
            cleanup = await self._handle_failure(item, submission_id, str(e))
            return ItemOutcome(
                submission_id=submission_id,
                status=OutcomeStatus.FAILED.value,
                error=str(e),
                msg_id=item.msg_id,
                cleanup=cleanup,
            )

        return await self._finalize(item, submission_id)

    async def build_profile(
        self,
        questions: List[CatalogQuestion],
        categories: List[str],
        responses: Mapping[str, Any],
        msg_id: Optional[int] = None,
    ) -> ProfileResult:
        """
        Score the responses, ask the model for the narrative, merge results.

        Raises:
            ModelCallError: The completion request failed
            MalformedModelOutput: The reply had no valid scorecard block
        """
        parsed = parse_responses(responses)
        numeric_scores = compute_scores(questions, parsed, self.scale_min, self.scale_max)
        logger.debug(f"Computed scores (msg {msg_id}): {json.dumps(numeric_scores)}")

        qa_text = format_answers(questions, parsed, self.scale_max)
        prompt = render_prompt(qa_text, categories, numeric_scores)

        # generate() is blocking HTTP; run it off the event loop
        response = await asyncio.to_thread(
            self.client.generate,
            prompt=prompt,
            max_tokens=settings.LLM_MAX_TOKENS,
            temperature=settings.LLM_TEMPERATURE,
        )

        summary, scorecard = parse_reply(response.content, categories)
        scorecard.merge_scores(numeric_scores)

        return ProfileResult(summary=summary, scorecard=scorecard, model=response.model)

    async def _extend_claim(self, item: QueueItem) -> None:
        """Renew the claim after the model call so the final writes stay exclusive."""
        try:
            await self.queue.extend(item.msg_id, self.visibility_timeout)
        except QueueClaimError as e:
            logger.warning(f"Could not extend claim on message {item.msg_id}: {e}")

    async def _finalize(self, item: QueueItem, submission_id: str) -> ItemOutcome:
        """Delete the finished item. The submission is already in its final state."""
        try:
            await self.queue.delete(item.msg_id)
        except QueueDeleteError as e:
            logger.error(f"Submission {submission_id} processed but message {item.msg_id} not deleted: {e}")
            return ItemOutcome(
                submission_id=submission_id,
                status=OutcomeStatus.FAILED.value,
                error=str(e),
                msg_id=item.msg_id,
            )

        logger.info(f"Successfully processed and deleted message for submission {submission_id}")
        return ItemOutcome(
            submission_id=submission_id,
            status=OutcomeStatus.SUCCESS.value,
            msg_id=item.msg_id,
        )

    async def _handle_failure(self, item: QueueItem, submission_id: str, error_message: str) -> FailureCleanup:
        """
        Mark the submission failed, then delete the item regardless.

        Each step is attempted independently; errors are recorded, not raised.
        """
        cleanup = FailureCleanup()

        try:
            cleanup.status_marked = await self.store.mark_failed(submission_id, error_message)
            if not cleanup.status_marked:
                cleanup.status_error = "Submission not found or already processed"
        except Exception as e:
            cleanup.status_error = str(e)
            logger.error(f"Failed to mark submission {submission_id} failed: {e}")

        try:
            await self.queue.delete(item.msg_id)
            cleanup.item_deleted = True
            logger.info(f"Deleted failed message for submission {submission_id}")
        except Exception as e:
            cleanup.delete_error = str(e)
            logger.error(f"Failed to delete failed message {item.msg_id}: {e}")

        return cleanup


# ============================================
# CLI ENTRY POINT
# ============================================

def main():
    """Run one worker invocation from the command line."""
    import argparse

    from database import init_engine, create_tables, close_engine
    from utils import init_logging

    parser = argparse.ArgumentParser(description="Process queued survey submissions")
    parser.add_argument("--batch-size", type=int, default=None, help="Max items to process")

    args = parser.parse_args()

    init_logging(app_name="worker")

    async def _run() -> dict:
        await init_engine()
        await create_tables()
        try:
            worker = SubmissionWorker(batch_size=args.batch_size)
            result = await worker.run_batch()
            return result.to_dict()
        finally:
            await close_engine()

    result = asyncio.run(_run())
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))


if __name__ == "__main__":
    main()
