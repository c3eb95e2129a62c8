import pytest


class RecordingReporter:
    """Reporter double recording every call made on it."""

    def __init__(self):
        self.calls = []
        self.closed = 0
        self.failures = []
        self.findings = 0
        self.sheets = []

    def __getattr__(self, name):
        if name.startswith('__'):
            raise AttributeError(name)

        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            self.findings += 1
        return record

    def start_site_report(self, url):
        self.calls.append(('start_site_report', (url,), {}))

    def set_side_descriptions(self, left, right):
        self.calls.append(('set_side_descriptions', (left, right), {}))

    def fail(self, message, element=None, properties=None, backend_name=None):
        self.failures.append(message)

    def has_failures(self):
        return bool(self.failures) or self.findings > 0

    def close(self):
        self.closed += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def names(self):
        return [call[0] for call in self.calls]

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def recorder():
    return RecordingReporter()
