"""
Unit tests for pubchat/surface.py

Tests the pane layout policy, pane content handling and screen rendering.
"""
import pytest

from pubchat.surface import Rect, Pane, Surface, layout
from pubchat.error import LayoutError, CursorError
from conftest import FakeTerminal


class TestLayout:
    """Test the log/input split."""

    @pytest.mark.parametrize('width,height', [
        (1, 5), (2, 5), (80, 5), (80, 24), (132, 43), (1, 200), (300, 6)
    ])
    def test_pane_sizes(self, width, height):
        """Log pane gets H-4 rows, input pane 2 rows, both full width."""
        log_rect, input_rect = layout(width, height)
        assert log_rect.height == height - 4
        assert input_rect.height == 2
        assert log_rect.width == width
        assert input_rect.width == width
        assert log_rect.x == input_rect.x == 0

    @pytest.mark.parametrize('width,height', [(1, 5), (80, 24), (40, 100)])
    def test_panes_do_not_overlap(self, width, height):
        """Input pane starts below the last log row."""
        log_rect, input_rect = layout(width, height)
        assert log_rect.y + log_rect.height <= input_rect.y

    def test_bottom_margin(self):
        """Input pane ends right above the last terminal row."""
        _, input_rect = layout(80, 24)
        assert input_rect == Rect(0, 21, 80, 2)
        assert input_rect.y + input_rect.height == 24 - 1

    @pytest.mark.parametrize('width,height', [(0, 24), (80, 4), (80, 0), (-1, -1)])
    def test_too_small(self, width, height):
        """Terminal too small raises LayoutError."""
        with pytest.raises(LayoutError):
            layout(width, height)


class TestPane:
    """Test Pane content buffer."""

    def test_write_appends_lines(self):
        """Each line of the text becomes an entry."""
        pane = Pane('log')
        pane.write('one')
        pane.write('two\nthree\n')
        assert list(pane.lines) == ['one', 'two', 'three']

    def test_write_empty_line(self):
        """Writing an empty string adds an empty line."""
        pane = Pane('log')
        pane.write('')
        assert list(pane.lines) == ['']

    def test_max_lines(self):
        """Oldest lines are dropped past max_lines."""
        pane = Pane('log', max_lines=3)
        for i in range(5):
            pane.write(str(i))
        assert list(pane.lines) == ['2', '3', '4']

    def test_buffer_reads_from_start(self):
        """buffer() returns every line joined."""
        pane = Pane('log')
        pane.write('a\nb')
        assert pane.buffer() == 'a\nb'

    def test_editable_clear_keeps_one_line(self):
        """Cleared editable pane holds a single empty line."""
        pane = Pane('input', editable=True)
        pane.set_buffer('hello')
        pane.clear()
        assert list(pane.lines) == ['']
        assert pane.buffer() == ''

    def test_set_cursor(self):
        """Cursor can be placed anywhere up to the end of the line."""
        pane = Pane('input', editable=True)
        pane.set_buffer('abc')
        pane.set_cursor(3, 0)
        assert pane.cursor == (3, 0)

    @pytest.mark.parametrize('x,y', [(4, 0), (-1, 0), (0, 1)])
    def test_set_cursor_out_of_range(self, x, y):
        """Cursor outside the buffer raises CursorError."""
        pane = Pane('input', editable=True)
        pane.set_buffer('abc')
        with pytest.raises(CursorError):
            pane.set_cursor(x, y)
        assert pane.cursor == (0, 0)

    def test_view_wraps(self):
        """Wrapped pane splits long lines."""
        pane = Pane('log', wrap=True)
        pane.write('aaaa bbbb cccc')
        assert pane.view(9, 10) == ['aaaa bbbb', 'cccc']

    def test_view_truncates_without_wrap(self):
        """Unwrapped pane cuts long lines."""
        pane = Pane('log')
        pane.write('aaaa bbbb cccc')
        assert pane.view(4, 10) == ['aaaa']

    def test_view_autoscroll_shows_newest(self):
        """Autoscroll keeps the last rows visible."""
        pane = Pane('log', autoscroll=True)
        for i in range(10):
            pane.write('line %d' % i)
        assert pane.view(20, 3) == ['line 7', 'line 8', 'line 9']

    def test_view_without_autoscroll_shows_oldest(self):
        pane = Pane('log')
        for i in range(10):
            pane.write('line %d' % i)
        assert pane.view(20, 2) == ['line 0', 'line 1']

    def test_view_zero_size(self):
        pane = Pane('log')
        pane.write('x')
        assert pane.view(0, 5) == []
        assert pane.view(5, 0) == []


@pytest.fixture
def surface():
    """Surface with a log pane and an input pane on an 80x24 terminal."""
    surface = Surface(FakeTerminal(80, 24))
    surface.add_pane(Pane('output', title='Messages', autoscroll=True,
                          wrap=True, color='red'), 'log')
    surface.add_pane(Pane('input', title='New Message', editable=True), 'input')
    return surface


class TestSurface:
    """Test Surface geometry and rendering."""

    def test_add_pane_unknown_slot(self, surface):
        with pytest.raises(ValueError):
            surface.add_pane(Pane('status'), 'top')

    def test_relayout_assigns_rects(self, surface):
        """relayout gives every pane the rect of its slot."""
        surface.relayout()
        assert surface.pane('output').rect == Rect(0, 0, 80, 20)
        assert surface.pane('input').rect == Rect(0, 21, 80, 2)

    def test_relayout_follows_terminal_size(self, surface):
        """Geometry is recomputed from the current size."""
        surface.relayout()
        surface.term.width, surface.term.height = 100, 30
        assert surface.resized()
        surface.relayout()
        assert not surface.resized()
        assert surface.pane('output').rect == Rect(0, 0, 100, 26)
        assert surface.pane('input').rect == Rect(0, 27, 100, 2)

    def test_relayout_failure_clears_rects(self, surface):
        """Failed layout leaves no stale geometry behind."""
        surface.relayout()
        surface.term.height = 3
        with pytest.raises(LayoutError):
            surface.relayout()
        assert surface.pane('output').rect is None
        assert surface.pane('input').rect is None
        assert not surface.resized()

    def test_write(self, surface):
        surface.write('output', 'hello')
        assert list(surface.pane('output').lines) == ['hello']

    @pytest.mark.parametrize('text, expected', [
        ('\x1b[2J\x1b[Hwiped', 'wiped'),
        ('\x1b[31mred\x1b[0m', 'red'),
        ('bell\x07', 'bell'),
        ('back\x08\x08space', 'backspace'),
        ('carriage\rreturn', 'carriagereturn'),
        ('tab\there', 'tab here'),
        ('café', 'café'),
    ])
    def test_clean(self, surface, text, expected):
        assert surface.clean(text) == expected

    def test_write_strips_control_characters(self, surface):
        """Remote text cannot reach the terminal as escape sequences."""
        surface.relayout()
        surface.write('output', 'one\n\x1b]0;title\x07two')
        surface.render()
        assert list(surface.pane('output').lines) == ['one', ']0;titletwo']
        out = surface.term.stream.getvalue()
        assert '\x1b' not in out
        assert '\x07' not in out

    def test_render_draws_titles_and_content(self, surface):
        """render writes pane titles and text to the terminal stream."""
        surface.relayout()
        surface.write('output', '<bob>: hello')
        surface.pane('input').set_buffer('typing')
        surface.render()
        out = surface.term.stream.getvalue()
        assert 'Messages' in out
        assert 'New Message' in out
        assert '<bob>: hello' in out
        assert 'typing' in out

    def test_render_without_layout_draws_nothing(self, surface):
        """Panes without geometry are skipped."""
        surface.write('output', 'hidden')
        surface.render()
        assert 'hidden' not in surface.term.stream.getvalue()

    def test_edit_row_keeps_cursor_visible(self, surface):
        """Long input scrolls so the cursor column stays on screen."""
        surface.term.width = 10
        surface.relayout()
        pane = surface.pane('input')
        pane.set_buffer('abcdefghijklmnop')
        pane.set_cursor(16, 0)
        row = surface._edit_row(pane, 10)
        assert row == 'hijklmnop '
