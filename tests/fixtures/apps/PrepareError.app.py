from bootcore import CoreApp


class PrepareErrorApp(CoreApp):
    async def prepare(self):
        raise RuntimeError("missing credentials")

    async def start(self):
        pass

    async def stop(self):
        pass
