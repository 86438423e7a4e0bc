#!/usr/bin/env python3
"""PubChat TUI client - a two-pane terminal chat.

The upper pane shows messages on the channel, the lower pane is the input
line. In 'pubnub' mode lines are published on a PubNub channel and
messages received on that channel are shown; in 'local' mode lines are
echoed straight into the message pane.

Usage:
    python -m clients.tui.client [config.json]

Keybindings:
    - Enter: Send message
    - Left/Right/Home/End: Move the cursor
    - Ctrl+C: Quit
"""

import sys
import signal
import functools
import asyncio
import logging

from blessed import Terminal

from pubchat import Surface, Pane, InputController, PubNubTransport, decode_payload
from pubchat import __version__
from pubchat.error import (
    ConfigError, TerminalError, LayoutError,
    PublishError, PayloadError,
    ErrorLog, ErrorKind
)

from common import get_config, prompt_session


class ChatClient:
    """Chat loop tying the transport, the panes and the input line together.

    Attributes:
        session (Session): Channel and username
        mode (str): 'pubnub' (networked) or 'local' (local echo)
        transport (Transport): Publish/subscribe channel, networked mode only
        term (Terminal): Blessed terminal instance for rendering
        surface (Surface): Screen holding the log and input panes
        input (InputController): Line editor bound to the input pane
        errors (ErrorLog): Non-fatal errors reported by the components
        queue (asyncio.Queue): Raw payloads waiting to be shown
        running (bool): Whether the key loop is active
        show_errors (bool): Echo publish failures into the log pane
    """
    logger = logging.getLogger(__name__)

    NETWORKED = 'pubnub'
    LOCAL = 'local'

    WELCOME = (
        '<PubChat>: Welcome to PubChat powered by PubNub!',
        '<PubChat>: Press Ctrl-C to quit.'
    )

    QUIT_KEYS = ('\x03',)  # Ctrl+C

    MIN_PUBLISH_LENGTH = 2

    # Seconds past one tick to wait for a pending key read on exit
    KEY_DRAIN_TIMEOUT = 1.0

    LOG = 'output'
    INPUT = 'input'

    def __init__(self, session, mode=NETWORKED, transport=None, term=None,
                 queue_size=0, history=1000, show_errors=False, tick=0.1):
        """Initialize the chat client.

        Args:
            session (Session): Channel and username
            mode (str): 'pubnub' or 'local'
            transport (Transport): Required in 'pubnub' mode
            term (Terminal): Terminal to draw on, a new one by default
            queue_size (int): Payload queue capacity, 0 for unbounded
            history (int): Lines kept in the log pane
            show_errors (bool): Echo publish failures into the log pane
            tick (float): Seconds to wait for a key before polling resize
        """
        if mode not in (self.NETWORKED, self.LOCAL):
            raise ValueError('unknown mode %r' % mode)
        if mode == self.NETWORKED and transport is None:
            raise ValueError('%s mode needs a transport' % mode)

        self.session = session
        self.mode = mode
        self.transport = transport
        self.term = term or Terminal()
        self.show_errors = show_errors
        self.tick = tick
        self.errors = ErrorLog(self.logger)
        self.queue = asyncio.Queue(maxsize=queue_size)
        self.running = False
        self.exit_reason = None
        self._stop = None
        self._tasks = set()

        self.surface = Surface(self.term)
        self.log_pane = self.surface.add_pane(Pane(
            self.LOG,
            title=' Messages  -  <%s> ' % session.channel,
            autoscroll=True,
            wrap=True,
            color='red',
            max_lines=history
        ), 'log')
        self.input_pane = self.surface.add_pane(Pane(
            self.INPUT,
            title=' New Message  -  <%s> ' % session.username,
            editable=True,
            color='white'
        ), 'input')
        self.input = InputController(self.input_pane, self.on_submit, self.errors)

    @property
    def networked(self):
        return self.mode == self.NETWORKED

    def relayout(self):
        """Recompute pane geometry, keeping the loop alive if it does not fit."""
        try:
            self.surface.relayout()
        except LayoutError as ex:
            self.errors.report(ErrorKind.LAYOUT, 'relayout', ex)

    def render(self):
        self.surface.render()

    def add_line(self, text):
        """Append a line to the log pane and redraw."""
        self.surface.write(self.LOG, text)
        self.render()

    def setup(self):
        """Lay out the panes and show the welcome lines."""
        self.relayout()
        for line in self.WELCOME:
            self.surface.write(self.LOG, line)
        self.input.reset()
        self.render()

    def _handle_resize(self, signum=None, frame=None):
        """Handle terminal resize events."""
        if self.running:
            self.relayout()
            self.render()

    def handle_key(self, key):
        """Dispatch a keystroke: quit keys first, then the input line."""
        if key in self.QUIT_KEYS:
            self.quit('quit key')
            return
        if self.input.handle_key(key):
            self.render()

    def on_submit(self, line):
        """Send or echo a submitted line.

        Args:
            line (str): Whole input buffer
        """
        if self.networked:
            if len(line) < self.MIN_PUBLISH_LENGTH:
                self.logger.debug('on_submit: ignoring %r', line)
                return
            self.spawn(self.publish(self.session.sign(line)))
        elif line:
            self.surface.write(self.LOG, self.session.sign(line))

    def spawn(self, coro, kind=ErrorKind.TASK):
        """Run a coroutine in the background, keeping a reference until done.

        Args:
            coro: Coroutine to run
            kind (str): ErrorKind the task's exception is reported as, or
                None when the caller retrieves it
        """
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._task_done, kind))
        return task

    def _task_done(self, kind, task):
        self._tasks.discard(task)
        if kind is None or task.cancelled():
            return
        ex = task.exception()
        if ex is not None:
            name = task.get_coro().__qualname__
            self.errors.report(kind, 'background task %s' % name, ex)

    async def publish(self, text):
        try:
            await self.transport.publish(self.session.channel, text)
        except PublishError as ex:
            self.errors.report(ErrorKind.PUBLISH, 'publish %r' % text, ex)
            if self.show_errors:
                self.add_line('<PubChat>: message not sent: %s' % ex)

    def deliver(self, raw):
        """Show one raw payload in the log pane.

        Malformed payloads are reported and dropped.

        Returns:
            str or None: Displayed text
        """
        try:
            text = decode_payload(raw)
        except PayloadError as ex:
            self.errors.report(ErrorKind.PAYLOAD, 'deliver', ex)
            return None
        self.add_line(text)
        return text

    async def receive(self):
        """Subscription task: move raw payloads from the transport to the queue."""
        async for raw in self.transport.subscribe(self.session.channel):
            await self.queue.put(raw)
        self.logger.warning('subscription to %s has ended', self.session.channel)

    async def consume(self):
        """Consumer task: show queued payloads one at a time.

        A payload that fails to show is reported and the loop moves on.
        """
        while True:
            raw = await self.queue.get()
            try:
                self.deliver(raw)
            except Exception as ex:
                self.errors.report(ErrorKind.PAYLOAD, 'deliver', ex)
            finally:
                self.queue.task_done()

    async def read_keys(self):
        """Key loop: wait for keystrokes off the event loop, apply them on it."""
        loop = asyncio.get_running_loop()
        while self.running:
            if self.surface.resized():
                self._handle_resize()
            key = await loop.run_in_executor(None, self.term.inkey, self.tick)
            if key and self.running:
                self.handle_key(key)

    def quit(self, reason='quit'):
        if self.exit_reason is None:
            self.exit_reason = reason
        self.running = False
        if self._stop is not None:
            self._stop.set()

    def _install_signal_handlers(self, loop):
        installed = []
        handlers = [(signal.SIGINT, lambda: self.quit('interrupt'))]
        if hasattr(signal, 'SIGWINCH'):
            handlers.append((signal.SIGWINCH, self._handle_resize))
        for sig, handler in handlers:
            try:
                loop.add_signal_handler(sig, handler)
                installed.append(sig)
            except (NotImplementedError, RuntimeError, ValueError) as ex:
                self.logger.debug('add_signal_handler(%s): %r', sig, ex)
        return installed

    async def run(self):
        """Run the chat loop until quit.

        Raises:
            TerminalError: Output is not a terminal
        """
        if not self.term.is_a_tty:
            raise TerminalError('output is not a terminal')

        loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        self.running = True
        self.exit_reason = None
        signals = []

        try:
            with self.term.fullscreen(), self.term.cbreak(), self.term.hidden_cursor():
                self.setup()
                signals = self._install_signal_handlers(loop)
                if self.networked:
                    self.spawn(self.receive(), kind=ErrorKind.SUBSCRIBE)
                    self.spawn(self.consume())
                keys = self.spawn(self.read_keys(), kind=None)
                stop = asyncio.ensure_future(self._stop.wait())
                try:
                    await asyncio.wait([keys, stop], return_when=asyncio.FIRST_COMPLETED)
                finally:
                    self.running = False
                    stop.cancel()
                    # The executor thread may be inside inkey, it must return
                    # before cbreak is switched off
                    if not keys.done():
                        await asyncio.wait([keys], timeout=self.tick + self.KEY_DRAIN_TIMEOUT)
                if keys.done() and not keys.cancelled() and keys.exception():
                    raise keys.exception()
        except Exception as ex:
            self.exit_reason = repr(ex)
            self.logger.exception('Fatal error in chat loop')
            raise
        finally:
            self.running = False
            for sig in signals:
                loop.remove_signal_handler(sig)
            for task in list(self._tasks):
                task.cancel()
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
            self.logger.info('Main loop has finished: %s', self.exit_reason)


async def run_client(argv=None, stdin=None, stdout=None):
    """Load configuration, ask for the session and run the chat loop.

    Returns:
        int: Exit code
    """
    conf, client_kwargs, transport_kwargs = get_config(argv)

    stdout = stdout or sys.stdout
    print('PubChat %s' % __version__, file=stdout)
    session = prompt_session(stdin, stdout)

    transport = None
    if client_kwargs['mode'] == ChatClient.NETWORKED:
        transport = PubNubTransport(**transport_kwargs)

    try:
        client = ChatClient(session, transport=transport, **client_kwargs)
        if transport is None:
            await client.run()
        else:
            async with transport:
                await client.run()
    except TerminalError as ex:
        print('\nTerminal error: %s' % ex, file=sys.stderr)
        return 1
    print('Goodbye!', file=stdout)
    return 0


def main():
    """Main entry point for the TUI client.

    Returns:
        int: Exit code (0 for success, 1 for error, 2 for bad configuration)
    """
    try:
        return asyncio.run(run_client())
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        print('\nFatal error: %s' % e, file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
