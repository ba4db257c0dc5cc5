"""
Simple demo of task state surviving a restart.

Run with:
    python examples/resume_after_restart.py
"""

import asyncio
import tempfile

from transferstate import (
    LocalDocumentStore,
    ResumeData,
    Task,
    TaskRecord,
    TaskStateStore,
    TaskStatus,
)
from transferstate.logging import setup_logging


async def main() -> None:
    setup_logging(level="DEBUG")
    workspace = tempfile.mkdtemp(prefix="transferstate_demo_")

    task = Task(task_id="t1", url="https://example.com/big.iso", allow_pause=True)

    print("\n=== First run ===\n")
    async with TaskStateStore(LocalDocumentStore(workspace)) as store:
        await store.store_task_record(TaskRecord(task=task, status=TaskStatus.RUNNING))
        await store.store_resume_data(ResumeData(task=task, data="offset=4096"))
        print(f"Stored state under {workspace}")

    print("\n=== After restart ===\n")
    async with TaskStateStore(LocalDocumentStore(workspace)) as store:
        record = await store.retrieve_task_record("t1")
        resume = await store.retrieve_resume_data("t1")
        print(f"Task record status: {record.status.value}")
        print(f"Resume data: {resume.data}")

        await store.remove_task_record("t1")
        print(f"Record after removal: {await store.retrieve_task_record('t1')}")
        print(f"Resume data still there: {(await store.retrieve_resume_data('t1')).data}")


if __name__ == "__main__":
    asyncio.run(main())
