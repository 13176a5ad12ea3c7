# tests/test_worker.py
"""
Submission worker tests: batch behavior, failure isolation, cleanup and
redelivery against an in-memory queue and store.
"""

import asyncio
import time
from datetime import datetime, timedelta

import pytest

from constants import SubmissionStatus
from database import get_session
from processor import (
    QueueClaimError,
    QueueDeleteError,
    StoreWriteError,
    SubmissionQueue,
    SubmissionStore,
    SubmissionWorker,
)
from processor.profile import OPENING_SENTENCE
from repositories import QueueRepository

from conftest import CATEGORIES, SAMPLE_RESPONSES, FakeLLMClient, make_reply


# =============================================================================
# ADAPTER DOUBLES
# =============================================================================

class RecordingStore(SubmissionStore):
    """Real store that records every write."""

    def __init__(self):
        super().__init__()
        self.writes = []

    async def mark_processing(self, submission_id):
        self.writes.append(("processing", submission_id))
        return await super().mark_processing(submission_id)

    async def mark_processed(self, submission_id, summary, scores):
        self.writes.append(("processed", submission_id))
        return await super().mark_processed(submission_id, summary, scores)

    async def mark_failed(self, submission_id, error_message):
        self.writes.append(("failed", submission_id))
        return await super().mark_failed(submission_id, error_message)


class FailingMarkFailedStore(SubmissionStore):

    async def mark_failed(self, submission_id, error_message):
        raise StoreWriteError("status store unavailable")


class BrokenCatalogStore(SubmissionStore):

    async def get_questions(self):
        raise RuntimeError("catalog unreachable")


class UndeletableQueue(SubmissionQueue):

    async def delete(self, msg_id):
        raise QueueDeleteError(f"Failed to delete message {msg_id} from queue: connection reset")


class RacingDeleteQueue(SubmissionQueue):
    """Someone else deletes the item just before we do."""

    async def delete(self, msg_id):
        await super().delete(msg_id)
        return await super().delete(msg_id)


class FlakyClaimQueue(SubmissionQueue):
    """Claims succeed `good_reads` times, then the queue goes away."""

    def __init__(self, good_reads=1):
        super().__init__(queue_name="submissions")
        self.good_reads = good_reads
        self.reads = 0

    async def claim(self, n=1, visibility_timeout=30):
        self.reads += 1
        if self.reads > self.good_reads:
            raise QueueClaimError("Queue read error: connection refused")
        return await super().claim(n=n, visibility_timeout=visibility_timeout)


class StaleStatusStore(SubmissionStore):
    """Reports the status seen before another worker finished the submission."""

    async def get_status(self, submission_id):
        return SubmissionStatus.PROCESSING.value


class KeepingQueue(SubmissionQueue):
    """Records claim extensions and leaves finished items in place."""

    def __init__(self, events):
        super().__init__(queue_name="submissions")
        self.events = events
        self.extended = []

    async def extend(self, msg_id, visibility_timeout):
        self.events.append("extend")
        self.extended.append(msg_id)
        return await super().extend(msg_id, visibility_timeout)

    async def delete(self, msg_id):
        self.events.append("delete")
        return True


class SlowLLMClient(FakeLLMClient):

    def __init__(self, delay):
        super().__init__()
        self.delay = delay

    def _complete(self, messages, max_tokens, temperature):
        time.sleep(self.delay)
        return super()._complete(messages, max_tokens, temperature)


def make_worker(client=None, store=None, queue=None, batch_size=5):
    return SubmissionWorker(
        client=client or FakeLLMClient(),
        store=store or SubmissionStore(),
        queue=queue or SubmissionQueue(queue_name="submissions"),
        batch_size=batch_size,
        visibility_timeout=30,
    )


# =============================================================================
# HAPPY PATH
# =============================================================================

class TestHappyPath:

    async def test_single_submission_is_processed(self, worker, enqueue, load_submission, queue, fake_client):
        submission_id = await enqueue()

        result = await worker.run_batch()

        assert result.to_dict() == {
            "processed": 1,
            "results": [{"submission_id": submission_id, "status": "success"}],
            "discarded": 0,
        }
        submission = await load_submission(submission_id)
        assert submission.status == SubmissionStatus.PROCESSED.value
        assert submission.summary.startswith(OPENING_SENTENCE)
        assert submission.processed_at is not None
        assert await queue.length() == 0
        assert fake_client.calls == 1

    async def test_scores_are_merged_from_engine(self, catalog, enqueue, load_submission):
        reply = make_reply(band="high", protectionist=-1, progressive=1,
                           extra={"privacy_score": 1.0, "invented_score": 2.0})
        worker = make_worker(client=FakeLLMClient(reply=reply))
        submission_id = await enqueue()

        await worker.run_batch()

        submission = await load_submission(submission_id)
        assert submission.scores == {
            "privacy": "high",
            "market_competition": "high",
            "ai_safety": "high",
            "protectionist": -1,
            "progressive": 1,
            "privacy_score": 4.0,
            "market_competition_score": 5.0,
            "ai_safety_score": 3.0,
        }

    async def test_prompt_carries_answers_and_scores(self, worker, enqueue, fake_client):
        await enqueue()

        await worker.run_batch()

        prompt = fake_client.prompts[0]
        assert "Rating: 4/5" in prompt
        assert "Explanation: Consent matters." in prompt
        assert '"privacy_score": 4.00' in prompt

    async def test_batch_size_limits_claims(self, catalog, enqueue, queue):
        for _ in range(3):
            await enqueue()
        worker = make_worker(batch_size=2)

        result = await worker.run_batch()

        assert result.processed == 2
        assert await queue.length() == 1

    async def test_empty_queue_makes_no_writes(self, catalog, database):
        store = RecordingStore()
        client = FakeLLMClient()
        worker = make_worker(client=client, store=store)

        result = await worker.run_batch()

        assert result.to_dict() == {"processed": 0, "results": [], "discarded": 0}
        assert store.writes == []
        assert client.calls == 0


# =============================================================================
# FAILURE ISOLATION
# =============================================================================

class TestFailures:

    async def test_one_model_failure_does_not_affect_the_batch(self, catalog, enqueue, load_submission, queue):
        ids = [await enqueue() for _ in range(5)]
        worker = make_worker(client=FakeLLMClient(fail_on={3}))

        result = await worker.run_batch()

        assert result.processed == 5
        assert [o.submission_id for o in result.results] == ids
        assert [o.status for o in result.results] == ["success", "success", "failed", "success", "success"]
        assert "Simulated timeout" in result.results[2].error
        assert result.results[2].cleanup.status_marked is True
        assert result.results[2].cleanup.item_deleted is True

        failed = await load_submission(ids[2])
        assert failed.status == SubmissionStatus.FAILED.value
        assert "Simulated timeout" in failed.error_message
        assert failed.summary is None

        for submission_id in ids[:2] + ids[3:]:
            submission = await load_submission(submission_id)
            assert submission.status == SubmissionStatus.PROCESSED.value
            assert submission.summary

        assert await queue.length() == 0

    async def test_malformed_reply_marks_failed_without_partial_result(self, catalog, enqueue, load_submission):
        worker = make_worker(client=FakeLLMClient(reply="A lovely narrative without any scorecard."))
        submission_id = await enqueue()

        result = await worker.run_batch()

        outcome = result.results[0]
        assert outcome.status == "failed"
        assert "No JSON found" in outcome.error

        submission = await load_submission(submission_id)
        assert submission.status == SubmissionStatus.FAILED.value
        assert submission.summary is None
        assert submission.scores is None

    async def test_missing_category_in_reply_fails(self, catalog, enqueue, load_submission):
        reply = make_reply(categories=CATEGORIES[:2])
        worker = make_worker(client=FakeLLMClient(reply=reply))
        submission_id = await enqueue()

        result = await worker.run_batch()

        assert result.results[0].status == "failed"
        assert "ai_safety" in result.results[0].error
        assert (await load_submission(submission_id)).scores is None

    async def test_unknown_submission_is_failed_and_deleted(self, catalog, queue):
        await queue.send({"submission_id": "sub_missing", "responses": SAMPLE_RESPONSES})
        worker = make_worker()

        result = await worker.run_batch()

        outcome = result.results[0]
        assert outcome.status == "failed"
        assert "not found" in outcome.error
        assert outcome.cleanup.status_marked is False
        assert outcome.cleanup.status_error
        assert outcome.cleanup.item_deleted is True
        assert await queue.length() == 0

    async def test_both_cleanup_steps_fail(self, catalog, enqueue):
        worker = make_worker(
            client=FakeLLMClient(fail_on={1}),
            store=FailingMarkFailedStore(),
            queue=UndeletableQueue(queue_name="submissions"),
        )
        await enqueue()

        batch = await worker.run_batch()

        cleanup = batch.results[0].cleanup
        assert batch.results[0].status == "failed"
        assert cleanup.status_marked is False
        assert cleanup.status_error == "status store unavailable"
        assert cleanup.item_deleted is False
        assert "connection reset" in cleanup.delete_error

    async def test_delete_failure_after_success_reports_failed(self, catalog, enqueue, load_submission):
        worker = make_worker(queue=UndeletableQueue(queue_name="submissions"), batch_size=1)
        submission_id = await enqueue()

        result = await worker.run_batch()

        outcome = result.results[0]
        assert outcome.status == "failed"
        assert "connection reset" in outcome.error
        assert outcome.cleanup is None
        assert (await load_submission(submission_id)).status == SubmissionStatus.PROCESSED.value


# =============================================================================
# QUEUE EDGE CASES
# =============================================================================

class TestQueueEdges:

    async def test_malformed_item_is_discarded(self, catalog, queue, enqueue):
        await queue.send({"submitted_at": "2024-01-01T00:00:00"})
        submission_id = await enqueue()
        client = FakeLLMClient()
        worker = make_worker(client=client)

        result = await worker.run_batch()

        assert result.discarded == 1
        assert [o.submission_id for o in result.results] == [submission_id]
        assert client.calls == 1
        assert await queue.length() == 0

    @pytest.mark.parametrize("payload", [
        {"submission_id": "sub_x"},
        {"responses": {"1": {"rating": 3}}},
        {"submission_id": "sub_x", "responses": {}},
        {"submission_id": "sub_x", "responses": ["not", "a", "mapping"]},
    ])
    async def test_invalid_payload_shapes(self, catalog, queue, payload):
        await queue.send(payload)

        result = await make_worker().run_batch()

        assert result.discarded == 1
        assert result.processed == 0

    async def test_already_deleted_item_still_succeeds(self, catalog, enqueue):
        worker = make_worker(queue=RacingDeleteQueue(queue_name="submissions"))
        await enqueue()

        result = await worker.run_batch()

        assert result.results[0].status == "success"

    async def test_claim_error_ends_batch_early(self, catalog, enqueue, load_submission):
        first = await enqueue()
        second = await enqueue()
        worker = make_worker(queue=FlakyClaimQueue(good_reads=1))

        result = await worker.run_batch()

        assert [o.submission_id for o in result.results] == [first]
        assert (await load_submission(second)).status == SubmissionStatus.PENDING.value

    async def test_catalog_failure_propagates(self, database, enqueue):
        await enqueue()
        worker = make_worker(store=BrokenCatalogStore())

        with pytest.raises(RuntimeError, match="catalog unreachable"):
            await worker.run_batch()

    async def test_redelivered_processed_item_skips_model(self, catalog, enqueue, queue, load_submission):
        client = FakeLLMClient()
        worker = make_worker(client=client)
        submission_id = await enqueue()
        await worker.run_batch()
        first_summary = (await load_submission(submission_id)).summary

        await queue.send({"submission_id": submission_id, "responses": SAMPLE_RESPONSES})
        client.reply = make_reply(band="low")
        result = await worker.run_batch()

        assert result.results[0].status == "success"
        assert client.calls == 1
        submission = await load_submission(submission_id)
        assert submission.summary == first_summary
        assert submission.scores["privacy"] == "medium"
        assert await queue.length() == 0

    async def test_failed_submission_can_be_retried_by_resend(self, catalog, enqueue, queue, load_submission):
        client = FakeLLMClient(fail_on={1})
        worker = make_worker(client=client)
        submission_id = await enqueue()
        await worker.run_batch()
        assert (await load_submission(submission_id)).status == SubmissionStatus.FAILED.value

        await queue.send({"submission_id": submission_id, "responses": SAMPLE_RESPONSES})
        await worker.run_batch()

        submission = await load_submission(submission_id)
        assert submission.status == SubmissionStatus.PROCESSED.value
        assert submission.summary
        assert submission.error_message is None

    async def test_submission_finished_elsewhere_is_not_reopened(self, catalog, enqueue, queue, load_submission):
        """A stale status read must not move a processed row back and then fail it."""
        client = FakeLLMClient(fail_on={2})
        submission_id = await enqueue()
        await make_worker(client=client).run_batch()
        finished = await load_submission(submission_id)

        await queue.send({"submission_id": submission_id, "responses": SAMPLE_RESPONSES})
        result = await make_worker(client=client, store=StaleStatusStore()).run_batch()

        assert result.results[0].status == "success"
        assert client.calls == 1
        submission = await load_submission(submission_id)
        assert submission.status == SubmissionStatus.PROCESSED.value
        assert submission.summary == finished.summary
        assert submission.scores == finished.scores
        assert submission.error_message is None
        assert await queue.length() == 0


# =============================================================================
# CLAIM EXTENSION AND EVENT LOOP
# =============================================================================

class TestModelCall:

    async def test_claim_is_extended_after_model_call(self, catalog, enqueue):
        events = []
        called_at = []

        def reply_fn(prompt):
            called_at.append(datetime.now())
            events.append("model")
            return make_reply()

        queue = KeepingQueue(events)
        worker = make_worker(client=FakeLLMClient(reply_fn=reply_fn), queue=queue, batch_size=1)
        await enqueue()

        await worker.run_batch()

        assert events == ["model", "extend", "delete"]
        async with get_session() as session:
            message = await QueueRepository(session).get_message("submissions", queue.extended[0])
        assert message.vt > called_at[0] + timedelta(seconds=30)

    async def test_model_call_does_not_block_the_event_loop(self, catalog, enqueue):
        await enqueue()
        worker = make_worker(client=SlowLLMClient(delay=0.5))
        gaps = []
        running = True

        async def heartbeat():
            last = time.monotonic()
            while running:
                await asyncio.sleep(0.05)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        ticker = asyncio.create_task(heartbeat())
        result = await worker.run_batch()
        running = False
        await ticker

        assert result.succeeded == 1
        assert len(gaps) >= 5
        assert max(gaps) < 0.2
