class NotAnApp:
    async def start(self):
        pass
