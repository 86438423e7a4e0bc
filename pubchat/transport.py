#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import re
import json
import uuid
import asyncio
import logging
from abc import ABC, abstractmethod
from urllib.parse import quote

import aiohttp

from .error import PublishError, PayloadError

EXCERPT_LENGTH = 80

# Timetoken at the end of a subscribe response, `[[...], "15280000000000000"]`
TIMETOKEN_TAIL = re.compile(r',\s*"(\d+)"\s*\]\s*$')


def decode_payload(raw):
    """Extract the displayable text from a raw subscription payload.

    Payloads use the PubNub SDK envelope, a JSON array whose first element
    is an array holding the message: `[["text"], "timetoken", "channel"]`.

    Parameters
    ----------
    raw : `str` or `bytes`

    Returns
    -------
    `str`

    Raises
    ------
    `pubchat.error.PayloadError`
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as ex:
        raise PayloadError('invalid json: %s' % _excerpt(raw)) from ex
    if not isinstance(payload, list) or not payload:
        raise PayloadError('not an envelope: %s' % _excerpt(raw))
    messages = payload[0]
    if not isinstance(messages, list) or not messages:
        raise PayloadError('no messages: %s' % _excerpt(raw))
    text = messages[0]
    if isinstance(text, str):
        return text
    try:
        return json.dumps(text)
    except (ValueError, RecursionError) as ex:
        raise PayloadError('message not printable: %s' % _excerpt(raw)) from ex


def _excerpt(raw, limit=EXCERPT_LENGTH):
    """Short repr of a payload for error messages."""
    text = repr(raw)
    if len(text) > limit:
        text = text[:limit] + '...'
    return text


class Transport(ABC):
    """Publish/subscribe channel."""

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self):
        pass

    async def close(self):
        pass

    @abstractmethod
    def subscribe(self, channel):
        """Listen on a channel.

        Returns an async iterator of raw payloads in arrival order. It does
        not complete on its own.
        """

    @abstractmethod
    async def publish(self, channel, text):
        """Send a line to a channel.

        Raises
        ------
        `pubchat.error.PublishError`
        """


class PubNubTransport(Transport):
    """PubNub REST transport.

    Attributes
    ----------
    publish_key : `str`
    subscribe_key : `str`
    origin : `str`
        Base URL of the PubNub network.
    uuid : `str`
        Client identifier sent with every request.
    subscribe_timeout : `float`
        Long-poll timeout in seconds.
    publish_timeout : `float`
    retry_delay : `float`
        Delay in seconds before polling again after an error.
    session : `None` or `aiohttp.ClientSession`
    """
    logger = logging.getLogger(__name__)

    ORIGIN = 'https://ps.pndsn.com'
    SUBSCRIBE_URL = '%(origin)s/subscribe/%(subscribe_key)s/%(channel)s/0/%(timetoken)s'
    PUBLISH_URL = ('%(origin)s/publish/%(publish_key)s/%(subscribe_key)s'
                   '/0/%(channel)s/0/%(message)s')

    def __init__(self,
                 publish_key='demo',
                 subscribe_key='demo',
                 origin=ORIGIN,
                 uuid=None,
                 subscribe_timeout=310,
                 publish_timeout=10,
                 retry_delay=1,
                 session=None):
        self.publish_key = publish_key
        self.subscribe_key = subscribe_key
        self.origin = origin.rstrip('/')
        self.uuid = uuid or self.new_uuid()
        self.subscribe_timeout = subscribe_timeout
        self.publish_timeout = publish_timeout
        self.retry_delay = retry_delay
        self.session = session
        self._own_session = session is None

    @staticmethod
    def new_uuid():
        return 'pubchat-%s' % uuid.uuid4()

    async def open(self):
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._own_session = True

    async def close(self):
        if self.session is not None and self._own_session:
            await self.session.close()
            self.session = None

    async def _get(self, url, timeout):
        await self.open()
        async with self.session.get(
                url,
                params={'uuid': self.uuid},
                timeout=aiohttp.ClientTimeout(total=timeout)
        ) as resp:
            text = await resp.text()
            if resp.status != 200:
                raise aiohttp.ClientResponseError(
                    resp.request_info,
                    resp.history,
                    status=resp.status,
                    message=text
                )
            return text

    async def subscribe(self, channel):
        timetoken = '0'
        while True:
            url = self.SUBSCRIBE_URL % {
                'origin': self.origin,
                'subscribe_key': quote(self.subscribe_key, safe=''),
                'channel': quote(channel, safe=''),
                'timetoken': timetoken
            }
            self.logger.debug('subscribe %s', url)
            try:
                body = await self._get(url, self.subscribe_timeout)
                messages, timetoken = self._parse_subscribe(body)
            except asyncio.TimeoutError:
                self.logger.debug('subscribe: long poll timed out')
                continue
            except (aiohttp.ClientError, ValueError) as ex:
                self.logger.error('subscribe %s: %r', channel, ex)
                await asyncio.sleep(self.retry_delay)
                continue
            for message in messages:
                try:
                    raw = json.dumps([[message], timetoken, channel])
                except (ValueError, RecursionError) as ex:
                    self.logger.error('subscribe %s: dropping message: %r', channel, ex)
                    continue
                yield raw

    def _parse_subscribe(self, body):
        """Split a subscribe response into (messages, timetoken).

        A response nested too deeply to parse is skipped as a whole when its
        timetoken can still be read, so the next poll moves past it.

        Raises
        ------
        `ValueError`
        """
        try:
            data = json.loads(body)
        except RecursionError:
            match = TIMETOKEN_TAIL.search(body)
            if match is None:
                raise ValueError('subscribe response nested too deeply: %s'
                                 % _excerpt(body)) from None
            self.logger.error('subscribe: skipping response nested too deeply, '
                              'timetoken %s', match.group(1))
            return [], match.group(1)
        if (not isinstance(data, list) or len(data) < 2
                or not isinstance(data[0], list)):
            raise ValueError('unexpected subscribe response: %s' % _excerpt(body))
        return data[0], str(data[1])

    async def publish(self, channel, text):
        url = self.PUBLISH_URL % {
            'origin': self.origin,
            'publish_key': quote(self.publish_key, safe=''),
            'subscribe_key': quote(self.subscribe_key, safe=''),
            'channel': quote(channel, safe=''),
            'message': quote(json.dumps(text), safe='')
        }
        self.logger.info('publish %s %r', channel, text)
        try:
            body = await self._get(url, self.publish_timeout)
            res = json.loads(body)
        except asyncio.TimeoutError as ex:
            raise PublishError(
                'publish timed out after %ss' % self.publish_timeout
            ) from ex
        except (aiohttp.ClientError, ValueError) as ex:
            raise PublishError('publish failed: %r' % ex) from ex
        if not isinstance(res, list) or not res or res[0] != 1:
            raise PublishError('publish rejected: %r' % (res,))
        self.logger.debug('publish: %r', res)
        return res
