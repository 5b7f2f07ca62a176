from tests.fixtures.recording import RecordingEnvironment


class ControlEnvironment(RecordingEnvironment):
    pass
