"""
Shared pytest fixtures for the PubChat test suite.

Provides a fake blessed terminal and a fake transport so the chat loop can
be driven without a real tty or network.
"""
import io
import re
import time
import asyncio
import logging
import collections
from contextlib import contextmanager

import pytest
from blessed.keyboard import Keystroke

from pubchat import Session
from pubchat.transport import Transport


ENTER = Keystroke('\n', code=343, name='KEY_ENTER')
BACKSPACE = Keystroke('\x7f', code=263, name='KEY_BACKSPACE')
DELETE = Keystroke('\x1b[3~', code=330, name='KEY_DELETE')
LEFT = Keystroke('\x1b[D', code=260, name='KEY_LEFT')
RIGHT = Keystroke('\x1b[C', code=261, name='KEY_RIGHT')
HOME = Keystroke('\x1b[H', code=262, name='KEY_HOME')
END = Keystroke('\x1b[F', code=360, name='KEY_END')
UP = Keystroke('\x1b[A', code=259, name='KEY_UP')
CTRL_C = Keystroke('\x03')

# Control sequences, the part of blessed's strip_seqs the fake needs
CSI = re.compile(r'\x1b\[[0-9;?]*[ -/]*[@-~]')


def typed(text):
    """Keystrokes for a run of printable characters."""
    return [Keystroke(ch) for ch in text]


class FakeTerminal:
    """Stand-in for `blessed.Terminal` recording output and mode changes.

    Color attributes (red, white, reverse, ...) return their text unchanged.
    """

    FORMATTERS = {'red', 'white', 'reverse', 'bold', 'bright_black'}

    home = ''
    clear = ''
    normal = ''

    def __init__(self, width=80, height=24, keys=(), is_a_tty=True, read_delay=0.01):
        self.width = width
        self.height = height
        self.is_a_tty = is_a_tty
        self.read_delay = read_delay
        self.stream = io.StringIO()
        self.keys = collections.deque(keys)
        self.active_modes = []
        self.entered_modes = []
        self.reads_outside_cbreak = 0

    def __getattr__(self, name):
        if name in self.FORMATTERS:
            return lambda text='': text
        raise AttributeError(name)

    def move_xy(self, x, y):
        return ''

    def strip_seqs(self, text):
        return CSI.sub('', text)

    def inkey(self, timeout=None):
        try:
            return self.keys.popleft()
        except IndexError:
            time.sleep(min(timeout or 0, self.read_delay))
            return Keystroke('')
        finally:
            if 'cbreak' not in self.active_modes:
                self.reads_outside_cbreak += 1

    @contextmanager
    def _mode(self, name):
        self.active_modes.append(name)
        self.entered_modes.append(name)
        try:
            yield
        finally:
            self.active_modes.remove(name)

    def fullscreen(self):
        return self._mode('fullscreen')

    def cbreak(self):
        return self._mode('cbreak')

    def hidden_cursor(self):
        return self._mode('hidden_cursor')


class FakeTransport(Transport):
    """Transport yielding canned payloads and recording publishes."""

    def __init__(self, payloads=(), fail=None):
        self.payloads = list(payloads)
        self.fail = fail
        self.published = []
        self.subscribed = []
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    async def subscribe(self, channel):
        self.subscribed.append(channel)
        for raw in self.payloads:
            yield raw
        # A subscription never completes on its own
        await asyncio.Event().wait()

    async def publish(self, channel, text):
        if self.fail is not None:
            raise self.fail
        self.published.append((channel, text))
        return [1, 'Sent', '1']


async def wait_until(predicate, timeout=2.0):
    """Poll `predicate` until it is true or `timeout` seconds pass."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError('condition not met in %ss' % timeout)
        await asyncio.sleep(0.01)


@pytest.fixture
def session():
    """Session used by the end-to-end scenarios."""
    return Session('lobby', 'alice')


@pytest.fixture
def term():
    """80x24 fake terminal."""
    return FakeTerminal()


@pytest.fixture
def transport():
    """Fake transport without canned payloads."""
    return FakeTransport()


@pytest.fixture
def restore_root_logger():
    """Remove handlers added to the root logger during a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def pytest_configure(config):
    """
    Pytest configuration hook.

    Registers custom markers.
    """
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
