#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
import textwrap
import collections

from blessed import Terminal

from .error import LayoutError, CursorError


Rect = collections.namedtuple('Rect', 'x y width height')

# Rows below the log pane: separator, two input rows, bottom margin.
BOTTOM_ROWS = 4
INPUT_HEIGHT = 2
MIN_HEIGHT = BOTTOM_ROWS + 1


def layout(width, height):
    """Split the terminal into the log and input panes.

    Layout (H = height)::

        row 0 .. H-5   log pane
        row H-4        separator
        row H-3 .. H-2 input pane
        row H-1        bottom margin

    Parameters
    ----------
    width : `int`
    height : `int`

    Returns
    -------
    (`Rect`, `Rect`)
        Log pane, input pane.

    Raises
    ------
    `pubchat.error.LayoutError`
        Terminal is too small.
    """
    if width < 1 or height < MIN_HEIGHT:
        raise LayoutError('terminal too small: %dx%d' % (width, height))
    log_rect = Rect(0, 0, width, height - BOTTOM_ROWS)
    input_rect = Rect(0, height - BOTTOM_ROWS + 1, width, INPUT_HEIGHT)
    return log_rect, input_rect


class Pane:
    """Rectangular terminal region with its own content.

    The first row of a pane is its title, the remaining rows show content.

    Attributes
    ----------
    name : `str`
    title : `str`
    rect : `None` or `Rect`
        Current geometry, `None` until laid out.
    autoscroll : `bool`
        Show the newest lines instead of the oldest ones.
    wrap : `bool`
        Wrap long lines instead of truncating them.
    editable : `bool`
    color : `None` or `str`
        blessed color name for the content.
    lines : `collections.deque` of `str`
    cursor : (`int`, `int`)
    """

    def __init__(self, name, title='',
                 autoscroll=False,
                 wrap=False,
                 editable=False,
                 color=None,
                 max_lines=1000):
        self.name = name
        self.title = title
        self.rect = None
        self.autoscroll = autoscroll
        self.wrap = wrap
        self.editable = editable
        self.color = color
        self.lines = collections.deque([''] if editable else [],
                                       maxlen=max_lines)
        self.cursor = (0, 0)

    def __str__(self):
        return self.name

    def __repr__(self):
        return '<Pane %s %s>' % (self.name, self.rect)

    def write(self, text):
        """Append text, one entry per line."""
        self.lines.extend(text.splitlines() or [''])

    def clear(self):
        self.lines.clear()
        if self.editable:
            self.lines.append('')

    def buffer(self):
        """Full pane text, read from the start."""
        return '\n'.join(self.lines)

    def set_buffer(self, text):
        self.lines.clear()
        self.write(text)

    def set_cursor(self, x, y):
        """Move the cursor.

        Raises
        ------
        `pubchat.error.CursorError`
        """
        if y < 0 or y >= len(self.lines) or x < 0 or x > len(self.lines[y]):
            raise CursorError('%s: invalid cursor (%d, %d)' % (self.name, x, y))
        self.cursor = (x, y)

    def view(self, width, height):
        """Rows of content that fit in `width` x `height`."""
        if width < 1 or height < 1:
            return []
        rows = []
        for line in self.lines:
            if self.wrap:
                rows.extend(textwrap.wrap(line, width=width,
                                          break_long_words=True,
                                          break_on_hyphens=True) or [''])
            else:
                rows.append(line[:width])
        if self.autoscroll:
            return rows[-height:]
        return rows[:height]


class Surface:
    """Terminal screen holding the log pane and the input pane.

    Attributes
    ----------
    term : `blessed.Terminal`
    panes : `dict` of (`str`, `Pane`)
    placement : `dict` of (`str`, `str`)
        Pane name to layout slot ('log' or 'input').
    size : `None` or (`int`, `int`)
        Terminal size used by the last layout.
    """
    logger = logging.getLogger(__name__)

    SLOTS = ('log', 'input')

    def __init__(self, term=None):
        self.term = term or Terminal()
        self.panes = {}
        self.placement = {}
        self.size = None
        self._stale = True

    def add_pane(self, pane, slot):
        if slot not in self.SLOTS:
            raise ValueError('unknown slot %r' % slot)
        self.panes[pane.name] = pane
        self.placement[pane.name] = slot
        return pane

    def pane(self, name):
        return self.panes[name]

    def resized(self):
        """Whether the terminal size differs from the last layout."""
        return (self.term.width, self.term.height) != self.size

    def relayout(self):
        """Recompute pane geometry from the current terminal size.

        Raises
        ------
        `pubchat.error.LayoutError`
        """
        width, height = self.term.width, self.term.height
        self.size = (width, height)
        self._stale = True
        try:
            rects = dict(zip(self.SLOTS, layout(width, height)))
        except LayoutError:
            for pane in self.panes.values():
                pane.rect = None
            raise
        for name, pane in self.panes.items():
            pane.rect = rects[self.placement[name]]
        self.logger.debug('relayout %dx%d', width, height)

    def clean(self, text):
        """Strip terminal sequences and control characters from `text`.

        Line breaks are kept, tabs become spaces.
        """
        text = self.term.strip_seqs(text).replace('\t', ' ')
        return ''.join(ch for ch in text if ch == '\n' or ch.isprintable())

    def write(self, name, text):
        self.panes[name].write(self.clean(text))

    def _draw_pane(self, pane):
        term = self.term
        x, y, width, height = pane.rect
        out = []
        title = self.clean(pane.title)[:width].ljust(width)
        out.append(term.move_xy(x, y) + term.reverse(title))
        color = getattr(term, pane.color) if pane.color else str
        if pane.editable:
            rows = [self._edit_row(pane, width)] if height > 1 else []
        else:
            rows = [color(row.ljust(width)) for row in pane.view(width, height - 1)]
        rows.extend([' ' * width] * (height - 1 - len(rows)))
        for i, row in enumerate(rows):
            out.append(term.move_xy(x, y + 1 + i) + row)
        return ''.join(out)

    def _edit_row(self, pane, width):
        cx, cy = pane.cursor
        line = pane.lines[cy] if cy < len(pane.lines) else ''
        start = max(0, cx - width + 1)
        visible = line[start:start + width]
        pos = cx - start
        before, at, after = visible[:pos], visible[pos:pos + 1] or ' ', visible[pos + 1:]
        row = before + self.term.reverse(at) + after
        return row + ' ' * max(0, width - len(before) - 1 - len(after))

    def render(self):
        """Draw every laid out pane."""
        out = []
        if self._stale:
            # Geometry changed, old rows may be left outside the panes
            out.append(self.term.home + self.term.clear)
            self._stale = False
        for pane in self.panes.values():
            if pane.rect is not None:
                out.append(self._draw_pane(pane))
        stream = self.term.stream
        stream.write(''.join(out) + self.term.normal)
        stream.flush()
