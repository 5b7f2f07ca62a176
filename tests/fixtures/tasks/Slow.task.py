import asyncio

from bootcore import CoreTask


class SlowTask(CoreTask):
    def __init__(self, directive, directive_options, args, logger):
        super().__init__(directive, directive_options, args, logger)
        self.executing = asyncio.Event()
        self._aborted = asyncio.Event()
        self.calls = []

    async def exec(self):
        self.executing.set()
        await self._aborted.wait()
        self.calls.append("exec settled")

    async def abort(self):
        self.calls.append("abort")
        self._aborted.set()
