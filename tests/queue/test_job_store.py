"""
Tests for the durable job queue.

Runs JobStore against a file-backed SQLite database with a fixed clock.
"""

from datetime import timedelta

import pytest

from orderdesk.config import QueuePolicy
from orderdesk.db.repositories.job import JobRepository
from orderdesk.models.job import JobStatus, JobType
from orderdesk.queue.store import JobStore, enqueue_order_fetch


@pytest.fixture
def store(uow_factory, clock) -> JobStore:
    return JobStore(QueuePolicy(), uow_factory=uow_factory, clock=clock)


def _payload(correlation_id: str = "mail_1") -> dict:
    return {"correlation_id": correlation_id, "from_email": "ayse@example.com"}


class TestEnqueueAndClaim:
    def test_enqueue_then_claim(self, store: JobStore, clock):
        """A fresh job is claimable immediately and is claimed once"""
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload(), priority=10)
        assert job_id is not None

        job = store.claim()
        assert job is not None
        assert job.id == job_id
        assert job.status == JobStatus.PROCESSING
        assert job.attempts == 1
        assert job.started_at == clock.now
        assert job.payload == _payload()

        assert store.claim() is None

    def test_claim_empty_queue(self, store: JobStore):
        assert store.claim() is None

    def test_higher_priority_claimed_first(self, store: JobStore, clock):
        low = store.enqueue(JobType.FETCH_ORDER, _payload("low"), priority=0)
        clock.advance(seconds=1)
        high = store.enqueue(JobType.FETCH_ORDER, _payload("high"), priority=10)

        assert store.claim().id == high
        assert store.claim().id == low

    def test_fifo_within_priority(self, store: JobStore, clock):
        first = store.enqueue(JobType.FETCH_ORDER, _payload("a"), priority=5)
        clock.advance(seconds=1)
        second = store.enqueue(JobType.FETCH_ORDER, _payload("b"), priority=5)

        assert store.claim().id == first
        assert store.claim().id == second

    def test_claim_filters_job_types(self, store: JobStore, clock):
        cleanup = store.enqueue(JobType.CLEANUP, {}, priority=10)
        clock.advance(seconds=1)
        fetch = store.enqueue(JobType.FETCH_ORDER, _payload(), priority=0)

        assert store.claim([JobType.FETCH_ORDER]).id == fetch
        assert store.claim([JobType.FETCH_ORDER]) is None
        assert store.claim().id == cleanup

    def test_enqueue_order_fetch(self, store: JobStore):
        job_id = enqueue_order_fetch(
            store,
            correlation_id="mail_42",
            from_email="Ayşe <ayse@example.com>",
            subject_text="Order #4521",
            priority=10,
        )

        job = store.get(job_id)
        assert job.job_type == JobType.FETCH_ORDER
        assert job.priority == 10
        assert job.payload == {
            "correlation_id": "mail_42",
            "from_email": "Ayşe <ayse@example.com>",
            "subject_text": "Order #4521",
            "body_text": "",
        }


class TestClaimRace:
    def test_lost_claim_retries_with_next_job(
        self, store: JobStore, uow_factory, clock, monkeypatch
    ):
        """When another worker takes the selected job, claim moves on to the next one"""
        first = store.enqueue(JobType.FETCH_ORDER, _payload("a"), priority=10)
        clock.advance(seconds=1)
        second = store.enqueue(JobType.FETCH_ORDER, _payload("b"), priority=5)

        competitor = JobStore(QueuePolicy(), uow_factory=uow_factory, clock=clock)
        original = JobRepository.find_next_eligible_id
        calls = []

        def find_then_lose_race(repo, now, job_types=None):
            job_id = original(repo, now, job_types)
            calls.append(job_id)
            if len(calls) == 1:
                # Another worker claims the same job before our CAS
                monkeypatch.setattr(JobRepository, "find_next_eligible_id", original)
                assert competitor.claim().id == first
                monkeypatch.setattr(
                    JobRepository, "find_next_eligible_id", find_then_lose_race
                )
            return job_id

        monkeypatch.setattr(JobRepository, "find_next_eligible_id", find_then_lose_race)

        job = store.claim()

        assert job is not None
        assert job.id == second
        assert len(calls) == 2
        assert store.get(first).attempts == 1

    def test_interleaved_claimers_share_queue_without_duplicates(
        self, store: JobStore, uow_factory, clock
    ):
        """Several workers draining one queue each get distinct jobs and miss none"""
        job_ids = set()
        for i in range(10):
            job_id = store.enqueue(JobType.FETCH_ORDER, _payload(f"mail_{i}"), priority=i % 3)
            job_ids.add(job_id)
            clock.advance(seconds=1)

        claimers = [store] + [
            JobStore(QueuePolicy(), uow_factory=uow_factory, clock=clock) for _ in range(2)
        ]
        claimed = []
        idle = 0
        while idle < len(claimers):
            idle = 0
            for claimer in claimers:
                job = claimer.claim()
                if job is None:
                    idle += 1
                else:
                    claimed.append(job.id)

        assert len(claimed) == len(set(claimed))
        assert set(claimed) == job_ids
        assert store.stats().by_status == {"processing": 10}


class TestComplete:
    def test_complete_processing_job(self, store: JobStore, clock):
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload())
        store.claim()
        clock.advance(seconds=5)

        assert store.complete(job_id) is True

        job = store.get(job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.completed_at == clock.now

    def test_complete_is_idempotent(self, store: JobStore):
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload())
        store.claim()

        assert store.complete(job_id) is True
        assert store.complete(job_id) is True
        assert store.get(job_id).status == JobStatus.COMPLETED

    def test_complete_pending_job_rejected(self, store: JobStore):
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload())

        assert store.complete(job_id) is False
        assert store.get(job_id).status == JobStatus.PENDING


class TestFail:
    def test_retry_delay_is_exponential(self, store: JobStore):
        assert store.retry_delay(1) == timedelta(seconds=2)
        assert store.retry_delay(2) == timedelta(seconds=4)
        assert store.retry_delay(3) == timedelta(seconds=8)

    def test_retry_delay_is_capped(self, uow_factory, clock):
        store = JobStore(
            QueuePolicy(max_backoff_seconds=60), uow_factory=uow_factory, clock=clock
        )
        assert store.retry_delay(10) == timedelta(seconds=60)

    def test_fail_reschedules_with_backoff(self, store: JobStore, clock):
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload())
        store.claim()

        assert store.fail(job_id, "Order API timeout") is True

        job = store.get(job_id)
        assert job.status == JobStatus.PENDING
        assert job.error_message == "Order API timeout"
        assert job.scheduled_at == clock.now + timedelta(seconds=2)

        # Not claimable before the backoff has passed
        assert store.claim() is None
        clock.advance(seconds=2)
        assert store.claim().id == job_id

    def test_fail_with_explicit_delay(self, store: JobStore, clock):
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload())
        store.claim()

        store.fail(job_id, "Rate limit", retry_delay=timedelta(minutes=15))

        assert store.get(job_id).scheduled_at == clock.now + timedelta(minutes=15)

    def test_fail_after_max_attempts_is_terminal(self, store: JobStore, clock):
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload())

        for _ in range(3):
            claimed = store.claim()
            assert claimed.id == job_id
            store.fail(job_id, "boom")
            clock.advance(hours=1)

        job = store.get(job_id)
        assert job.status == JobStatus.FAILED
        assert job.attempts == 3
        assert job.error_message == "boom"
        assert store.claim() is None

    def test_retry_schedule_moves_forward(self, store: JobStore, clock):
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload())
        schedule = [store.get(job_id).scheduled_at]

        for _ in range(2):
            store.claim()
            failed_at = clock.now
            store.fail(job_id, "Order API timeout")
            scheduled_at = store.get(job_id).scheduled_at
            assert scheduled_at > failed_at
            schedule.append(scheduled_at)
            clock.advance(minutes=1)

        assert schedule == sorted(set(schedule))
        assert schedule[2] - schedule[1] > timedelta(seconds=2)

    def test_fail_requires_processing(self, store: JobStore):
        job_id = store.enqueue(JobType.FETCH_ORDER, _payload())

        assert store.fail(job_id, "boom") is False
        assert store.get(job_id).attempts == 0

    def test_fail_unknown_job(self, store: JobStore):
        assert store.fail("0b6f8c1e-7d7a-4d43-9d0e-2c9f0f4c8a11", "boom") is False


class TestPruneAndStats:
    def test_prune_removes_old_terminal_jobs(self, store: JobStore, clock):
        done = store.enqueue(JobType.FETCH_ORDER, _payload("done"))
        store.claim()
        store.complete(done)
        pending = store.enqueue(JobType.FETCH_ORDER, _payload("pending"))

        clock.advance(days=8)

        assert store.prune() == 1
        assert store.get(done) is None
        assert store.get(pending) is not None

    def test_prune_keeps_recent_jobs(self, store: JobStore, clock):
        done = store.enqueue(JobType.FETCH_ORDER, _payload())
        store.claim()
        store.complete(done)

        clock.advance(days=1)

        assert store.prune() == 0
        assert store.prune(older_than_days=0) == 1

    def test_stats(self, store: JobStore):
        store.enqueue(JobType.FETCH_ORDER, _payload("a"))
        store.enqueue(JobType.FETCH_ORDER, _payload("b"))
        store.enqueue(JobType.CLEANUP, {})
        store.claim([JobType.CLEANUP])

        stats = store.stats()

        assert stats.total == 3
        assert stats.by_status == {"pending": 2, "processing": 1}
        assert stats.by_type == {"fetch_order": 2, "cleanup": 1}


class TestStorageUnavailable:
    @pytest.fixture
    def broken_store(self, broken_uow_factory, clock) -> JobStore:
        return JobStore(QueuePolicy(), uow_factory=broken_uow_factory, clock=clock)

    def test_operations_degrade(self, broken_store: JobStore):
        """Storage failures are reported as None/False/0 instead of raised"""
        job_id = "0b6f8c1e-7d7a-4d43-9d0e-2c9f0f4c8a11"

        assert broken_store.enqueue(JobType.FETCH_ORDER, _payload()) is None
        assert broken_store.claim() is None
        assert broken_store.complete(job_id) is False
        assert broken_store.fail(job_id, "boom") is False
        assert broken_store.prune() == 0
        assert broken_store.get(job_id) is None
        assert broken_store.stats() is None
