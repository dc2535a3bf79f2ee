"""
LiteFS Person Directory - Flask Application
Lists recently generated fake persons from a DuckDB-attached SQLite file and
generates new ones, with Fly.io region replay for multi-region deployments
"""

import os
import sys
import argparse
import logging
from logging.handlers import RotatingFileHandler

import duckdb
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from flask import (
    Flask,
    render_template,
    request,
    redirect,
    url_for,
    make_response,
)
from werkzeug.exceptions import MethodNotAllowed

from config import Config, parse_bind_address
from services.fake_people import generate_person
from services.person_store import PersonStore, StartupError

# Initialize Flask app
app = Flask(__name__)
app.config.from_object(Config)

os.makedirs(app.config.get('LOG_DIR', 'logs'), exist_ok=True)
_file_handler = RotatingFileHandler(
    os.path.join(app.config.get('LOG_DIR', 'logs'), 'app.log'),
    maxBytes=5 * 1024 * 1024,
    backupCount=5,
)
_file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
if not any(isinstance(h, RotatingFileHandler) for h in app.logger.handlers):
    app.logger.addHandler(_file_handler)
logging.getLogger('services').setLevel(app.config.get('LOG_LEVEL', 'INFO'))
logging.getLogger('services').addHandler(_file_handler)

if app.config.get('SENTRY_DSN'):
    sentry_sdk.init(
        dsn=app.config.get('SENTRY_DSN'),
        integrations=[FlaskIntegration()],
        traces_sample_rate=app.config.get('SENTRY_TRACES_SAMPLE_RATE', 0.1),
    )

STORE_EXTENSION = 'person_store'


# ===== DATABASE INITIALIZATION =====

def init_db():
    """Open the person store from the current config and register it on the app."""
    previous = app.extensions.pop(STORE_EXTENSION, None)
    if previous is not None:
        previous.close()

    store = PersonStore.open(
        app.config['DATABASE_DSN'],
        attach_path=app.config.get('SQLITE_ATTACH_PATH'),
        attach_alias=app.config.get('SQLITE_ATTACH_ALIAS', 'db'),
    )
    app.extensions[STORE_EXTENSION] = store
    return store


def get_store():
    store = app.extensions.get(STORE_EXTENSION)
    if store is None:
        raise RuntimeError('database not initialized; call init_db() first')
    return store


# ===== ROUTES =====

@app.route('/')
def index():
    """Recent persons as HTML, or as plain text for `Accept: text/plain`."""
    current_region = app.config.get('FLY_REGION', '')

    # Replay the request in another region when one is asked for.
    region = request.args.get('region', '')
    if region and region != current_region:
        app.logger.info('redirecting from %r to %r', current_region, region)
        resp = make_response('', 200)
        resp.headers['fly-replay'] = f'region={region}'
        return resp

    persons = get_store().recent(app.config['RECENT_PERSONS_LIMIT'])

    if request.headers.get('Accept', '').strip() == 'text/plain':
        lines = [f'REGION: {current_region}\n', '\n']
        lines.extend(f'- {p.name} @ {p.company} ({p.phone})\n' for p in persons)
        resp = make_response(''.join(lines), 200)
        resp.mimetype = 'text/plain'
        return resp

    return render_template('index.html', region=current_region, persons=persons)


@app.route('/generate', methods=['POST'], provide_automatic_options=False)
def generate():
    """Insert one fake person and send the client back where it came from."""
    store = get_store()
    person = generate_person(store.next_id())
    store.insert(person)
    app.logger.info('generated person id=%s', person.id)

    return redirect(request.referrer or url_for('index'), code=302)


# ===== ERROR HANDLERS =====

@app.errorhandler(MethodNotAllowed)
def method_not_allowed(error):
    resp = make_response('Method not allowed\n', 405)
    resp.mimetype = 'text/plain'
    if error.valid_methods:
        resp.headers['Allow'] = ', '.join(error.valid_methods)
    return resp


@app.errorhandler(duckdb.Error)
def database_error(error):
    app.logger.exception('database error on %s %s', request.method, request.path)
    resp = make_response(f'{error}\n', 500)
    resp.mimetype = 'text/plain'
    return resp


# ===== APPLICATION ENTRY POINT =====

def main(argv=None):
    parser = argparse.ArgumentParser(description='LiteFS person directory server')
    parser.add_argument('--dsn', default=app.config['DATABASE_DSN'], help='datasource name; a file stem must differ from the attach alias')
    parser.add_argument('--addr', default=app.config['BIND_ADDRESS'], help='bind address')
    args = parser.parse_args(argv)

    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'), format='%(message)s')

    try:
        if not args.dsn:
            raise StartupError('dsn required')
        if not args.addr:
            raise StartupError('bind address required')
        try:
            host, port = parse_bind_address(args.addr)
        except ValueError as exc:
            raise StartupError(str(exc)) from exc

        app.config['DATABASE_DSN'] = args.dsn
        app.config['BIND_ADDRESS'] = args.addr
        init_db()
    except StartupError as exc:
        print(exc, file=sys.stderr)
        raise SystemExit(1)

    app.logger.info('http server listening on %s', args.addr)
    try:
        app.run(host=host, port=port, debug=app.config['DEBUG'], threaded=True, use_reloader=False)
    finally:
        store = app.extensions.pop(STORE_EXTENSION, None)
        if store is not None:
            store.close()


if __name__ == '__main__':
    main()
