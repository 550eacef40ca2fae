import os
import sys
import pytest

# Ensure the repository root is on sys.path so imports like `import app` and `import live` work
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

class FakeTimers:
    """call_later replacement; callbacks run only when advance() passes them"""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback):
        h = FakeHandle(self.now + delay, callback)
        self.handles.append(h)
        return h

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float):
        deadline = self.now + seconds
        while True:
            due = [h for h in self.active if h.when <= deadline]
            if not due:
                break
            h = min(due, key=lambda x: x.when)
            self.now = h.when
            h.cancel()
            h.callback()
        self.now = deadline

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def timers():
    return FakeTimers()
