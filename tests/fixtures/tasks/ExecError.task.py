from bootcore import CoreTask


class ExecErrorTask(CoreTask):
    async def exec(self):
        raise ValueError("bad input row")
