#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging

from .error import CursorError, ErrorKind


class InputController:
    """Line editor for the input pane.

    Keys edit the pane buffer at the cursor. Enter hands the whole buffer
    to `on_submit`, then empties the buffer and puts the cursor at (0, 0).

    Attributes
    ----------
    pane : `pubchat.surface.Pane`
        Editable pane holding the buffer.
    on_submit : `function` (line)
        Called with the submitted line.
    errors : `None` or `pubchat.error.ErrorLog`
    """
    logger = logging.getLogger(__name__)

    SUBMIT_KEYS = ('KEY_ENTER',)
    BACKSPACE_KEYS = ('KEY_BACKSPACE',)
    DELETE_KEYS = ('KEY_DELETE',)

    def __init__(self, pane, on_submit, errors=None):
        self.pane = pane
        self.on_submit = on_submit
        self.errors = errors

    @property
    def buffer(self):
        return self.pane.buffer()

    @property
    def cursor(self):
        return self.pane.cursor

    def _set(self, text, x):
        self.pane.set_buffer(text)
        self._move(x)

    def _move(self, x):
        try:
            self.pane.set_cursor(x, 0)
        except CursorError as ex:
            if self.errors is None:
                self.logger.warning('set_cursor: %r', ex)
            else:
                self.errors.report(ErrorKind.CURSOR, 'set_cursor', ex)

    def handle_key(self, key):
        """Apply a keystroke.

        Parameters
        ----------
        key : `blessed.keyboard.Keystroke`

        Returns
        -------
        `bool`
            Whether the key was used.
        """
        text = self.buffer
        x = self.cursor[0]
        name = key.name
        if name in self.SUBMIT_KEYS:
            self.submit()
        elif name in self.BACKSPACE_KEYS:
            if x > 0:
                self._set(text[:x - 1] + text[x:], x - 1)
        elif name in self.DELETE_KEYS:
            self._set(text[:x] + text[x + 1:], x)
        elif name == 'KEY_LEFT':
            self._move(max(0, x - 1))
        elif name == 'KEY_RIGHT':
            self._move(min(len(text), x + 1))
        elif name == 'KEY_HOME':
            self._move(0)
        elif name == 'KEY_END':
            self._move(len(text))
        elif key.is_sequence or not key or not str(key).isprintable():
            return False
        else:
            self._set(text[:x] + str(key) + text[x:], x + len(key))
        return True

    def submit(self):
        """Hand the buffer to `on_submit` and reset the pane.

        Returns
        -------
        `str`
            Submitted line.
        """
        # Read from the start, the cursor may be anywhere in the line
        line = self.buffer
        try:
            self.on_submit(line)
        finally:
            self.reset()
        return line

    def reset(self):
        """Empty the buffer and put the cursor at (0, 0)."""
        self.pane.clear()
        self._move(0)
