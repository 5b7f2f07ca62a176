from bootcore import CoreModule


class ExcellentModule(CoreModule):
    module_name = "excellent"
    description = "Greets"

    def __init__(self, config, logger):
        super().__init__(config, logger)
        self.calls = []

    async def prepare(self):
        self.calls.append("prepare")

    async def release(self):
        self.calls.append("release")
