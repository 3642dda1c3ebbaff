import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication  # noqa: E402

from bubble_model import Bubble, BubbleType, SpeechTailPart, ThoughtDotPart  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


class FakeMeasurer:
    """Monospace stand-in: every character is 0.6 em wide."""

    CHAR_EM = 0.6

    def measure(self, text, font):
        return len(text) * font.size * self.CHAR_EM


class RecordingSurface(FakeMeasurer):
    def __init__(self):
        self.calls = []

    def set_font(self, font):
        self.calls.append(("font", font))

    def set_fill_color(self, color):
        self.calls.append(("fill", color))

    def set_stroke_style(self, color, width):
        self.calls.append(("stroke", color, width))

    def fill_text(self, text, x, y):
        self.calls.append(("text", text, x, y))

    def stroke_line(self, x1, y1, x2, y2):
        self.calls.append(("line", x1, y1, x2, y2))

    def texts(self):
        return [c for c in self.calls if c[0] == "text"]


@pytest.fixture
def measurer():
    return FakeMeasurer()


@pytest.fixture
def surface():
    return RecordingSurface()


def make_speech(**kw):
    tail = SpeechTailPart("tail-1", base_cx=75, base_cy=90, base_width=20,
                          tip_x=75, tip_y=120, initial_length=30, initial_base_width=20)
    fields = dict(id="bubble-1", type=BubbleType.SPEECH_DOWN, text="Hi",
                  x=100, y=100, width=150, height=90, parts=(tail,))
    fields.update(kw)
    return Bubble(**fields)


def make_thought(**kw):
    dots = (ThoughtDotPart("dot-1", 60, 100, 15),
            ThoughtDotPart("dot-2", 50, 115, 10))
    fields = dict(id="bubble-2", type=BubbleType.THOUGHT, text="Hmm",
                  x=0, y=0, width=100, height=80, parts=dots)
    fields.update(kw)
    return Bubble(**fields)


@pytest.fixture
def speech():
    return make_speech()


@pytest.fixture
def thought():
    return make_thought()
