from bootcore import CoreModule


class FineModule(CoreModule):
    def __init__(self, config, logger):
        super().__init__(config, logger)
        logger.publish("INFO", "fine instantiated")

    async def prepare(self):
        pass

    async def release(self):
        pass
