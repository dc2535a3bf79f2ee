import os
from pathlib import Path

import pytest

from app import app, get_store, init_db
from services.person_store import Person


@pytest.fixture
def client():
    app.config.update(
        DATABASE_DSN='memory',
        SQLITE_ATTACH_PATH='',
        FLY_REGION='ams',
        RECENT_PERSONS_LIMIT=10,
        TESTING=True,
    )
    init_db()
    with app.test_client() as c:
        yield c
    app.extensions.pop('person_store').close()


def test_index_empty_renders_html(client):
    resp = client.get('/')
    assert resp.status_code == 200
    assert resp.mimetype == 'text/html'
    assert b'No records yet' in resp.data
    assert b'ams' in resp.data


def test_index_plain_text_format(client):
    get_store().insert(Person(1, 'Ada Lovelace', '555-0100', 'Analytical Engines'))
    resp = client.get('/', headers={'Accept': 'text/plain'})
    assert resp.status_code == 200
    assert resp.mimetype == 'text/plain'
    assert resp.data == b'REGION: ams\n\n- Ada Lovelace @ Analytical Engines (555-0100)\n'


def test_index_lists_ten_most_recent_descending(client):
    for _ in range(12):
        client.post('/generate')
    resp = client.get('/', headers={'Accept': 'text/plain'})
    lines = resp.data.decode().splitlines()[2:]
    assert len(lines) == 10

    expected = get_store().recent(10)
    assert [p.id for p in expected] == list(range(12, 2, -1))
    assert lines == [f'- {p.name} @ {p.company} ({p.phone})' for p in expected]


def test_index_html_escapes_person_fields(client):
    get_store().insert(Person(1, '<script>alert(1)</script>', '555', 'ACME'))
    resp = client.get('/')
    assert b'<script>alert(1)</script>' not in resp.data
    assert b'&lt;script&gt;' in resp.data


def test_region_param_triggers_replay(client):
    resp = client.get('/?region=lhr')
    assert resp.status_code == 200
    assert resp.headers['fly-replay'] == 'region=lhr'
    assert resp.data == b''


def test_same_region_renders_normally(client):
    resp = client.get('/?region=ams')
    assert resp.status_code == 200
    assert 'fly-replay' not in resp.headers
    assert b'LiteFS Example' in resp.data


def test_empty_region_renders_normally(client):
    resp = client.get('/?region=')
    assert resp.status_code == 200
    assert 'fly-replay' not in resp.headers
    assert b'LiteFS Example' in resp.data


def test_generate_adds_one_row_with_next_id(client):
    store = get_store()
    store.insert(Person(41, 'Grace Hopper', '555-0199', 'Navy'))
    before = store.count()

    resp = client.post('/generate')
    assert resp.status_code == 302
    assert store.count() == before + 1
    newest = store.recent(1)[0]
    assert newest.id == 42
    assert newest.name and newest.phone and newest.company


def test_generate_redirects_to_referer(client):
    resp = client.post('/generate', headers={'Referer': 'http://localhost/?from=test'})
    assert resp.status_code == 302
    assert resp.headers['Location'] == 'http://localhost/?from=test'


def test_generate_without_referer_redirects_home(client):
    resp = client.post('/generate')
    assert resp.headers['Location'] == '/'


@pytest.mark.parametrize('method', ['get', 'put', 'delete', 'patch', 'options'])
def test_generate_rejects_non_post(client, method):
    resp = getattr(client, method)('/generate')
    assert resp.status_code == 405
    assert resp.headers['Allow'] == 'POST'
    assert b'Method not allowed' in resp.data
    assert get_store().count() == 0


def test_database_error_returns_500_with_error_text(client):
    with get_store().cursor() as cur:
        cur.execute('DROP TABLE persons')
    resp = client.get('/')
    assert resp.status_code == 500
    assert resp.mimetype == 'text/plain'
    assert b'persons' in resp.data


def test_generate_database_error_returns_500(client):
    with get_store().cursor() as cur:
        cur.execute('DROP TABLE persons')
    resp = client.post('/generate')
    assert resp.status_code == 500


def test_unknown_path_is_404(client):
    assert client.get('/missing-page').status_code == 404


def test_index_template_resolves_under_app_root():
    _, filename, _ = app.jinja_loader.get_source(app.jinja_env, 'index.html')
    assert os.path.dirname(filename) == os.path.join(app.root_path, 'templates')


def test_templates_are_packaged_beside_app_module():
    tomllib = pytest.importorskip('tomllib')
    with open(Path(__file__).resolve().parents[1] / 'pyproject.toml', 'rb') as fh:
        setuptools_cfg = tomllib.load(fh)['tool']['setuptools']
    assert 'app' in setuptools_cfg['py-modules']
    assert 'templates' in setuptools_cfg['packages']
    assert setuptools_cfg['package-data']['templates'] == ['*.html']
