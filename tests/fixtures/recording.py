"""Environment hook base recording every checkpoint it observes."""
import os
from typing import List

from bootcore import CoreEnvironment, EnvironmentEvent

EVENTS_BY_METHOD = {event.method_name: event.value for event in EnvironmentEvent}


class RecordingEnvironment(CoreEnvironment):
    # Name of an environment variable holding the event to fail on
    fail_variable = None

    def __init__(self, logger):
        super().__init__(logger)
        self.calls: List[str] = []

    def __getattr__(self, name):
        if name in EVENTS_BY_METHOD:
            return lambda: self._record(EVENTS_BY_METHOD[name])
        raise AttributeError(name)

    def _record(self, event: str) -> None:
        self.calls.append(event)
        if self.fail_variable and os.environ.get(self.fail_variable) == event:
            raise RuntimeError(f"{type(self).__name__} failed on {event}")
