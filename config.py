"""
Configuration for the LiteFS person directory
Loads settings from environment variables
"""

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration"""

    DEBUG = os.environ.get('FLASK_ENV') == 'development' or os.environ.get('FLASK_DEBUG') == '1'

    # Database
    DATABASE_DSN = os.environ.get('DATABASE_DSN', 'memory')
    SQLITE_ATTACH_PATH = os.environ.get('SQLITE_ATTACH_PATH', '/litefs/db.sqlite')
    SQLITE_ATTACH_ALIAS = os.environ.get('SQLITE_ATTACH_ALIAS', 'db')

    # HTTP
    BIND_ADDRESS = os.environ.get('BIND_ADDRESS', ':8080')
    RECENT_PERSONS_LIMIT = int(os.environ.get('RECENT_PERSONS_LIMIT', '10'))

    # Fly.io region of this instance
    FLY_REGION = os.environ.get('FLY_REGION', '')

    # Monitoring / logging
    SENTRY_DSN = os.environ.get('SENTRY_DSN')
    SENTRY_TRACES_SAMPLE_RATE = float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', '0.1'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')


def parse_bind_address(addr):
    """Split a ``host:port`` bind address. An empty host binds all interfaces."""
    host, sep, port = (addr or '').rpartition(':')
    if not sep or not port.isdigit():
        raise ValueError(f'invalid bind address: {addr!r}')
    port = int(port)
    if not 0 < port < 65536:
        raise ValueError(f'invalid bind address: {addr!r}')
    return host or '0.0.0.0', port
