import os

from config import parse_bind_address

_host, _port = parse_bind_address(os.getenv('BIND_ADDRESS', ':8080'))

bind = f"{_host}:{_port}"
workers = int(os.getenv('GUNICORN_WORKERS', '1'))
threads = int(os.getenv('GUNICORN_THREADS', '4'))
worker_class = os.getenv('GUNICORN_WORKER_CLASS', 'gthread')
timeout = int(os.getenv('GUNICORN_TIMEOUT', '120'))
graceful_timeout = 30
keepalive = 5
accesslog = '-'
errorlog = '-'
loglevel = os.getenv('GUNICORN_LOG_LEVEL', 'info')


def post_worker_init(worker):
    from app import init_db

    init_db()
