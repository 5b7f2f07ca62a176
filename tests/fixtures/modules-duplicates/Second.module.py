from bootcore import CoreModule


class SecondModule(CoreModule):
    module_name = "duplicate"

    def __init__(self, config, logger):
        super().__init__(config, logger)
        logger.publish("INFO", "second instantiated")

    async def prepare(self):
        pass

    async def release(self):
        pass
