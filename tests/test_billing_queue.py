"""Deferred processing handoff: ARQ enqueue with dedup, inline background tasks."""

import asyncio

from fastapi import BackgroundTasks

from menubill.schemas.events import CustomerActivity
from menubill.services.billing_dispatcher import run_billing_event
from menubill.services.billing_queue import ArqBillingQueue, InlineBillingQueue


class FakeRedis:
    """Records enqueue_job calls; a repeated job id returns None like ARQ does."""

    def __init__(self):
        self.jobs = []
        self._ids = set()

    async def enqueue_job(self, function, *args, _job_id=None, **kwargs):
        if _job_id is not None and _job_id in self._ids:
            return None
        self._ids.add(_job_id)
        self.jobs.append((function, args, _job_id))
        return object()


def test_arq_queue_enqueues_serialized_event():
    redis = FakeRedis()
    queue = ArqBillingQueue(redis)
    event = CustomerActivity(event_id="evt_1", event_type="invoice.paid", customer_id="cus_1")

    asyncio.run(queue.submit(event, BackgroundTasks()))

    function, args, job_id = redis.jobs[0]
    assert function == "process_billing_event_job"
    assert args[0]["kind"] == "customer_activity"
    assert args[0]["customer_id"] == "cus_1"
    assert job_id == "stripe-event:evt_1"


def test_arq_queue_deduplicates_redelivered_event():
    redis = FakeRedis()
    queue = ArqBillingQueue(redis)
    event = CustomerActivity(event_id="evt_1", event_type="invoice.paid", customer_id="cus_1")

    async def _submit_twice():
        await queue.submit(event, BackgroundTasks())
        await queue.submit(event, BackgroundTasks())

    asyncio.run(_submit_twice())

    assert len(redis.jobs) == 1


def test_inline_queue_schedules_background_task(settings):
    tasks = BackgroundTasks()
    queue = InlineBillingQueue(session_factory="factory", gateway="gateway", settings=settings)
    event = CustomerActivity(event_id="evt_1", event_type="invoice.paid", customer_id="cus_1")

    asyncio.run(queue.submit(event, tasks))

    assert len(tasks.tasks) == 1
    task = tasks.tasks[0]
    assert task.func is run_billing_event
    assert task.args == (event, "factory", "gateway", settings)
