from tests.fixtures.recording import RecordingEnvironment


class NotProductionEnvironment(RecordingEnvironment):
    environment = "!production"
