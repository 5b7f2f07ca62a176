from tests.fixtures.recording import RecordingEnvironment


class ConsoleEnvironment(RecordingEnvironment):
    only_for = "console"
