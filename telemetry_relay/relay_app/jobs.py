import asyncio
from typing import Set


class JobManager:
    def __init__(self):
        self.tasks: Set[asyncio.Task] = set()

    def start(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    def __len__(self) -> int:
        return len(self.tasks)

    async def stop(self):
        pending = list(self.tasks)
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.tasks.clear()
