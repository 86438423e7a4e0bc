#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import collections


class Session(collections.namedtuple('Session', 'channel username')):
    """Channel and username chosen at startup.

    Attributes
    ----------
    channel : `str`
        Channel name.
    username : `str`
        Name shown in front of every line this client sends.
    """
    __slots__ = ()

    def sign(self, text):
        """Prefix a line with the username: '<name>: text'."""
        return '<%s>: %s' % (self.username, text)
