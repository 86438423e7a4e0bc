#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import sys
import json
import logging

from pubchat import Session
from pubchat.error import ConfigError


logger = logging.getLogger(__name__)

LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'

CHANNEL_PROMPT = 'Enter Channel Name: '
USERNAME_PROMPT = 'Enter Desired Username: '

MODES = ('pubnub', 'local')


class RobustFileHandler(logging.FileHandler):
    """FileHandler that gracefully handles flush errors on Windows"""

    def flush(self):
        """Flush the stream, ignoring EINVAL from broken Windows handles"""
        try:
            super().flush()
        except OSError as e:
            if e.errno != 22:  # EINVAL
                raise


def configure_logger(logger,
                     log_file=None,
                     log_format=LOG_FORMAT,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        handler = RobustFileHandler(
            log_file,
            mode='a',
            encoding='utf-8',
            errors='replace'
        )
    else:
        handler = logging.StreamHandler(log_file)

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(handler)
    logger.setLevel(log_level)

    return logger


def load_config(path):
    """Read a JSON configuration file

    Raises:
        ConfigError: File is missing, unreadable or not a JSON object
    """
    try:
        with open(path, 'r', encoding='utf-8') as fp:
            conf = json.load(fp)
    except (OSError, ValueError) as ex:
        raise ConfigError('%s: %s' % (path, ex)) from ex
    if not isinstance(conf, dict):
        raise ConfigError('%s: expected a JSON object' % path)
    return conf


def get_number(conf, key, default, minimum=0, integer=False, strict=False):
    """Read a numeric option.

    Args:
        minimum: Smallest value allowed, excluded too when `strict`
        integer (bool): Only accept integers

    Raises:
        ConfigError: Not a number, or out of range
    """
    value = conf.get(key, default)
    types = int if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, types):
        raise ConfigError('%s must be %s, not %r'
                          % (key, 'an integer' if integer else 'a number', value))
    if not (value > minimum if strict else value >= minimum):
        raise ConfigError('%s must be %s %s, not %r'
                          % (key, 'above' if strict else 'at least', minimum, value))
    return value


def get_option(conf, key, default, types):
    """Read an option that must be an instance of `types`.

    Raises:
        ConfigError: Wrong type
    """
    value = conf.get(key, default)
    if not isinstance(value, types):
        raise ConfigError('invalid %s %r' % (key, value))
    return value


def get_config(argv=None):
    """Load configuration from the optional JSON file named on the command line

    The screen belongs to the chat interface, so log records go to
    `log_file` (default 'pubchat.log') instead of stderr.

    Args:
        argv: Command line, defaults to sys.argv

    Returns:
        Tuple of (conf, client_kwargs, transport_kwargs)

    Raises:
        ConfigError: Bad arguments, unreadable file or invalid option values
    """
    argv = sys.argv if argv is None else argv
    if len(argv) > 2:
        raise ConfigError('usage: %s [config file]' % argv[0])

    conf = load_config(argv[1]) if len(argv) == 2 else {}

    mode = conf.get('mode', 'pubnub')
    if mode not in MODES:
        raise ConfigError('mode must be one of %s, not %r' % (', '.join(MODES), mode))

    level_name = str(conf.get('log_level', 'info')).upper()
    log_level = getattr(logging, level_name, None)
    if not isinstance(log_level, int):
        raise ConfigError('unknown log_level %r' % conf['log_level'])

    client_kwargs = {
        'mode': mode,
        'queue_size': get_number(conf, 'queue_size', 0, integer=True),  # 0 - unbounded
        'history': get_number(conf, 'history', 1000, minimum=1, integer=True),
        'show_errors': get_option(conf, 'show_errors', False, bool)
    }
    transport_kwargs = {
        'publish_key': get_option(conf, 'publish_key', 'demo', str),
        'subscribe_key': get_option(conf, 'subscribe_key', 'demo', str),
        'origin': get_option(conf, 'origin', 'https://ps.pndsn.com', str),
        'uuid': get_option(conf, 'uuid', None, (str, type(None))),
        'subscribe_timeout': get_number(conf, 'subscribe_timeout', 310, strict=True),
        'publish_timeout': get_number(conf, 'publish_timeout', 10, strict=True),
        'retry_delay': get_number(conf, 'retry_delay', 1)
    }
    log_file = get_option(conf, 'log_file', 'pubchat.log', (str, type(None)))

    configure_logger(logging.getLogger(), log_file=log_file, log_level=log_level)
    return conf, client_kwargs, transport_kwargs


def read_line(prompt, stdin=None, stdout=None):
    """Print a prompt and read one line without its trailing newline"""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stdout.write(prompt)
    stdout.flush()
    line = stdin.readline()
    if not line:
        logger.error('%s: end of input', prompt.strip())
    return line[:-1] if line.endswith('\n') else line


def prompt_session(stdin=None, stdout=None):
    """Ask for the channel name and the username

    Returns:
        Session
    """
    channel = read_line(CHANNEL_PROMPT, stdin, stdout)
    username = read_line(USERNAME_PROMPT, stdin, stdout)
    return Session(channel, username)
