#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
import collections


class PubChatError(Exception):
    ''' Base class for all exceptions in the pubchat package '''

class ConfigError(PubChatError):
    ''' Exception raised when the configuration file is invalid '''

class TerminalError(PubChatError):
    ''' Exception raised when the terminal cannot be used '''

class LayoutError(TerminalError):
    ''' Exception raised when panes do not fit in the terminal '''

class CursorError(TerminalError):
    ''' Exception raised when a cursor position is outside of a pane '''

class TransportError(PubChatError):
    ''' Base class for all exceptions in the transport layer '''

class PublishError(TransportError):
    ''' Exception raised when a message could not be published '''

class PayloadError(TransportError):
    ''' Exception raised when a received payload has an unexpected shape '''


class ErrorKind:
    ''' Kinds of non-fatal failures recorded by `ErrorLog` '''
    LAYOUT = 'layout'
    PAYLOAD = 'payload'
    PUBLISH = 'publish'
    CURSOR = 'cursor'
    SUBSCRIBE = 'subscribe'
    TASK = 'task'


ErrorReport = collections.namedtuple('ErrorReport', 'kind context error')


class ErrorLog:
    """Bounded record of non-fatal errors.

    Components report failures here instead of logging them inline; every
    report is logged once with its context and kept for inspection.

    Attributes
    ----------
    logger : `logging.Logger`
    reports : `collections.deque` of `ErrorReport`
    """

    LOG_LEVEL = {
        ErrorKind.LAYOUT: logging.WARNING,
        ErrorKind.CURSOR: logging.WARNING
    }

    LOG_LEVEL_DEFAULT = logging.ERROR

    def __init__(self, logger=None, maxlen=100):
        self.logger = logger or logging.getLogger(__name__)
        self.reports = collections.deque(maxlen=maxlen)

    def report(self, kind, context, error):
        """Record a failure.

        Parameters
        ----------
        kind : `str`
            One of `ErrorKind`.
        context : `str`
            What was being done when the error occurred.
        error : `Exception`

        Returns
        -------
        `ErrorReport`
        """
        rep = ErrorReport(kind, context, error)
        level = self.LOG_LEVEL.get(kind, self.LOG_LEVEL_DEFAULT)
        self.logger.log(level, '%s: %s: %r', kind, context, error)
        self.reports.append(rep)
        return rep

    def count(self, kind=None):
        if kind is None:
            return len(self.reports)
        return sum(1 for rep in self.reports if rep.kind == kind)

    def last(self):
        return self.reports[-1] if self.reports else None

    def __len__(self):
        return len(self.reports)

    def __iter__(self):
        return iter(self.reports)
