import asyncio
import pytest
from jobrelay.core.config import PROMPT_MAX_LENGTH
from jobrelay.core.errors import Conflict, InternalError, NotFound, ValidationError
from jobrelay.job_manager import JobManager, validate_prompt
from jobrelay.job_store import InMemoryJobStore, SqlJobStore
from jobrelay.models.job import JobStatus
from jobrelay.worker import WorkerSimulator


class BrokenStore(InMemoryJobStore):
    def create(self, job):
        raise RuntimeError("connection refused")

    def list_recent(self):
        raise RuntimeError("connection refused")


class RecordingWorker(WorkerSimulator):
    def __init__(self):
        super().__init__("http://testserver", "secret")
        self.delivered = []

    async def deliver(self, job_id):
        self.delivered.append(job_id)
        return True


@pytest.fixture
def worker():
    return RecordingWorker()


@pytest.fixture
def manager(store, scheduler, worker):
    return JobManager(store, scheduler=scheduler, worker=worker, completion_delay=5.0)


@pytest.mark.unit
class TestValidatePrompt:
    def test_trims(self):
        assert validate_prompt("  summarize X \n") == "summarize X"

    @pytest.mark.parametrize("prompt", ["", "   ", "\n\t", None, 42, ["a"]])
    def test_rejects_empty_or_non_string(self, prompt):
        with pytest.raises(ValidationError):
            validate_prompt(prompt)

    def test_length_bounds(self):
        assert len(validate_prompt("x" * PROMPT_MAX_LENGTH)) == PROMPT_MAX_LENGTH
        assert validate_prompt("  " + "x" * PROMPT_MAX_LENGTH + "  ") == "x" * PROMPT_MAX_LENGTH
        with pytest.raises(ValidationError):
            validate_prompt("x" * (PROMPT_MAX_LENGTH + 1))


@pytest.mark.unit
class TestJobManager:
    @pytest.mark.asyncio
    async def test_create_pending_and_schedules_once(self, manager, scheduler, worker):
        job = await manager.create("summarize X")
        assert job.status == JobStatus.PENDING
        assert job.result is None
        assert job.created_at == job.updated_at

        assert len(scheduler.calls) == 1
        assert scheduler.calls[0][0] == 5.0
        await scheduler.run_all()
        assert worker.delivered == [job.id]

    @pytest.mark.asyncio
    async def test_create_invalid_stores_and_schedules_nothing(self, manager, store, scheduler):
        with pytest.raises(ValidationError):
            await manager.create("   ")
        assert store.list_recent() == []
        assert scheduler.calls == []

    @pytest.mark.asyncio
    async def test_create_without_worker_schedules_nothing(self, store, scheduler):
        manager = JobManager(store, scheduler=scheduler)
        await manager.create("no worker")
        assert scheduler.calls == []

    @pytest.mark.asyncio
    async def test_storage_failure_on_create(self, scheduler, worker):
        manager = JobManager(BrokenStore(), scheduler=scheduler, worker=worker)
        with pytest.raises(InternalError) as exc_info:
            await manager.create("prompt")
        assert exc_info.value.message == "Failed to create job"
        assert scheduler.calls == []

    @pytest.mark.asyncio
    async def test_storage_failure_on_list(self):
        manager = JobManager(BrokenStore())
        with pytest.raises(InternalError):
            await manager.list()

    @pytest.mark.asyncio
    async def test_get(self, manager):
        job = await manager.create("prompt")
        assert (await manager.get(job.id)).status == JobStatus.PENDING
        with pytest.raises(NotFound):
            await manager.get("does-not-exist")
        with pytest.raises(NotFound):
            await manager.get("")

    @pytest.mark.asyncio
    async def test_list_newest_first(self, manager):
        assert await manager.list() == []
        a = await manager.create("A")
        b = await manager.create("B")
        c = await manager.create("C")
        assert [j.id for j in await manager.list()] == [c.id, b.id, a.id]

    @pytest.mark.asyncio
    async def test_complete_stores_result_verbatim(self, manager):
        job = await manager.create("prompt")
        payload = '{"ok":true, "note": "  not parsed  "}'
        done = await manager.complete(job.id, payload)
        assert done.status == JobStatus.COMPLETED
        assert done.result == payload
        assert done.updated_at >= done.created_at
        assert (await manager.get(job.id)).result == payload

    @pytest.mark.asyncio
    @pytest.mark.parametrize("job_id, result", [
        ("", "r"), (None, "r"), ("abc", ""), ("abc", None), ("abc", 12),
    ])
    async def test_complete_validation_before_lookup(self, manager, job_id, result):
        with pytest.raises(ValidationError):
            await manager.complete(job_id, result)

    @pytest.mark.asyncio
    async def test_complete_unknown_touches_nothing(self, manager, store):
        other = await manager.create("other")
        with pytest.raises(NotFound):
            await manager.complete("nope", "result")
        assert store.get(other.id) == other

    @pytest.mark.asyncio
    async def test_replay_is_idempotent(self, manager):
        job = await manager.create("prompt")
        first = await manager.complete(job.id, "r1")
        again = await manager.complete(job.id, "r1")
        assert again == first

    @pytest.mark.asyncio
    async def test_recomplete_with_other_result_conflicts(self, manager):
        job = await manager.create("prompt")
        await manager.complete(job.id, "r1")
        with pytest.raises(Conflict):
            await manager.complete(job.id, "r2")
        with pytest.raises(Conflict):
            await manager.fail(job.id, "too late")
        assert (await manager.get(job.id)).result == "r1"

    @pytest.mark.asyncio
    async def test_fail(self, manager):
        job = await manager.create("prompt")
        failed = await manager.fail(job.id, "worker crashed")
        assert failed.status == JobStatus.FAILED
        assert failed.result == "worker crashed"
        with pytest.raises(Conflict):
            await manager.complete(job.id, "late result")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("backend", ["memory", "sqlite"])
    async def test_concurrent_completes_single_winner(self, backend, tmp_path):
        if backend == "memory":
            store = InMemoryJobStore()
        else:
            store = SqlJobStore(f"sqlite:///{tmp_path / 'jobs.db'}")
        store.connect()
        manager = JobManager(store)
        job = await manager.create("prompt")
        outcomes = await asyncio.gather(
            *(manager.complete(job.id, f"result-{i}") for i in range(20)),
            return_exceptions=True,
        )
        winners = [o for o in outcomes if not isinstance(o, Exception)]
        assert len(winners) == 1
        assert all(isinstance(o, Conflict) for o in outcomes if isinstance(o, Exception))
        assert (await manager.get(job.id)).result == winners[0].result

    @pytest.mark.asyncio
    async def test_concurrent_reads_see_whole_records(self, manager):
        job = await manager.create("prompt")
        reads = [manager.get(job.id) for _ in range(20)]
        results = await asyncio.gather(*reads[:10], manager.complete(job.id, "x"), *reads[10:])
        for view in results:
            assert (view.status == JobStatus.PENDING) == (view.result is None)
