# Make top-level modules (`app`, `core.*`, `services.*`) importable from tests
# without installing the project.
import os
import sys

import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)


class RecordingLogger:
    """RequestLogger that keeps events in memory instead of writing files."""

    def __init__(self):
        self.requests = []
        self.responses = []
        self.errors = []

    def log_request(self, path, headers, body):
        self.requests.append((path, dict(headers), body))

    def log_response(self, status, elapsed_ms, *, forwarded=True):
        self.responses.append((status, forwarded))

    def log_error(self, route, status, message):
        self.errors.append((route, status, message))


@pytest.fixture
def recording_logger():
    return RecordingLogger()
