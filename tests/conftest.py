import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from supabase import AuthError, PostgrestAPIError

from lenglogs.app import create_app
from lenglogs.services import supabase_service

PASSWORD = 'secret1'

# Column defaults applied by the database on insert
TABLE_DEFAULTS = {
    'facilities': {'is_active': True},
    'user_profiles': {'is_active': True, 'role': 'staff'},
    'patients': {'is_active': True},
    'forms': {'is_active': True},
    'questions': {'required': False, 'options': None},
    'form_submissions': {'status': 'completed'},
    'answers': {},
}


def now_iso():
    return datetime.now(timezone.utc).isoformat()


class FakeAuthError(AuthError):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message
        self.code = None


class FakeQuery:
    """Records one PostgREST-style call chain and runs it on execute()."""

    def __init__(self, backend, table):
        self.backend = backend
        self.table = table
        self.op = 'select'
        self.payload = None
        self.count = None
        self.filters = []
        self.order_by = None
        self.limit_n = None

    def select(self, columns='*', count=None):
        self.op = 'select'
        self.count = count
        return self

    def insert(self, payload):
        self.op = 'insert'
        self.payload = payload
        return self

    def update(self, payload):
        self.op = 'update'
        self.payload = payload
        return self

    def delete(self):
        self.op = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and str(row.get(column)) >= str(value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def execute(self):
        return self.backend.execute(self)


class FakeAuth:
    def __init__(self, backend):
        self.backend = backend

    def sign_in_with_password(self, credentials):
        self.backend.calls.append(('auth', 'sign_in'))
        user = self.backend.users.get(credentials['email'])
        if not user or user['password'] != credentials['password']:
            raise FakeAuthError('Invalid login credentials')
        return SimpleNamespace(user=SimpleNamespace(id=user['id'], email=user['email']),
                               session=self.backend.new_session(user['id']))

    def sign_up(self, credentials):
        self.backend.calls.append(('auth', 'sign_up'))
        email = credentials['email']
        if email in self.backend.users:
            raise FakeAuthError('User already registered')
        user_id = self.backend.add_auth_user(email, credentials['password'])
        data = credentials.get('options', {}).get('data', {})

        # What the on-signup trigger does in the real project
        self.backend.insert_row('user_profiles', {
            'user_id': user_id,
            'email': email,
            'first_name': data.get('first_name'),
            'last_name': data.get('last_name'),
            'role': data.get('role'),
            'phone': data.get('phone'),
            'facility_id': None,
        })

        session = self.backend.new_session(user_id) if self.backend.auto_confirm else None
        return SimpleNamespace(user=SimpleNamespace(id=user_id, email=email), session=session)

    def set_session(self, access_token, refresh_token):
        user_id = self.backend.sessions.get(access_token)
        if not user_id:
            raise FakeAuthError('Invalid Refresh Token')
        return SimpleNamespace(
            user=SimpleNamespace(id=user_id),
            session=SimpleNamespace(access_token=access_token, refresh_token=refresh_token)
        )

    def sign_out(self):
        self.backend.calls.append(('auth', 'sign_out'))


class FakeClient:
    def __init__(self, backend):
        self.backend = backend
        self.auth = FakeAuth(backend)

    def table(self, name):
        return FakeQuery(self.backend, name)


class FakeSupabase:
    """In-memory stand-in for a Supabase project, shared by every client built in a test."""

    def __init__(self):
        self.tables = {name: [] for name in TABLE_DEFAULTS}
        self.users = {}
        self.sessions = {}
        self.failures = {}
        self.calls = []
        self.auto_confirm = False

    # --- failure injection ---
    def fail(self, table, op, error=None):
        self.failures[(table, op)] = error or PostgrestAPIError(
            {'message': f'{op} on {table} failed', 'code': '500'}
        )

    def remote_calls(self, table=None, op=None):
        return [c for c in self.calls
                if (table is None or c[0] == table) and (op is None or c[1] == op)]

    # --- auth ---
    def add_auth_user(self, email, password):
        user_id = str(uuid.uuid4())
        self.users[email] = {'id': user_id, 'email': email, 'password': password}
        return user_id

    def new_session(self, user_id):
        token = f'access-{uuid.uuid4()}'
        self.sessions[token] = user_id
        return SimpleNamespace(access_token=token, refresh_token=f'refresh-{uuid.uuid4()}')

    # --- seeding ---
    def insert_row(self, table, values):
        row = dict(TABLE_DEFAULTS.get(table, {}))
        row.update({'id': str(uuid.uuid4()), 'created_at': now_iso()})
        if table == 'form_submissions':
            row['submitted_at'] = now_iso()
        row.update(values)
        self.tables.setdefault(table, []).append(row)

        # Mirrors the trigger linking a new facility to its creator's profile
        if table == 'facilities' and row.get('created_by'):
            for profile in self.tables['user_profiles']:
                if profile['user_id'] == row['created_by'] and not profile.get('facility_id'):
                    profile['facility_id'] = row['id']
        return row

    def add_facility(self, name='Sunrise Adult Day Care'):
        return self.insert_row('facilities', {'name': name})

    def add_user(self, email, role='staff', facility_id=None, first_name='Test', last_name='User',
                 is_active=True, password=PASSWORD):
        user_id = self.add_auth_user(email, password)
        return self.insert_row('user_profiles', {
            'user_id': user_id,
            'email': email,
            'first_name': first_name,
            'last_name': last_name,
            'role': role,
            'facility_id': facility_id,
            'is_active': is_active,
        })

    def add_patient(self, facility_id, first_name, last_name, **fields):
        values = {'facility_id': facility_id, 'first_name': first_name, 'last_name': last_name}
        values.update(fields)
        return self.insert_row('patients', values)

    def add_form(self, facility_id, title, questions=(), **fields):
        values = {'facility_id': facility_id, 'title': title, 'description': None}
        values.update(fields)
        form = self.insert_row('forms', values)
        for index, question in enumerate(questions):
            row = {'form_id': form['id'], 'order_index': index}
            row.update(question)
            self.insert_row('questions', row)
        return form

    def rows(self, table, **match):
        return [r for r in self.tables.get(table, [])
                if all(r.get(k) == v for k, v in match.items())]

    # --- query execution ---
    def execute(self, query):
        self.calls.append((query.table, query.op))
        error = self.failures.get((query.table, query.op))
        if error:
            raise error

        rows = self.tables.setdefault(query.table, [])

        if query.op == 'insert':
            payloads = query.payload if isinstance(query.payload, list) else [query.payload]
            inserted = [dict(self.insert_row(query.table, p)) for p in payloads]
            return SimpleNamespace(data=inserted, count=None)

        matched = [r for r in rows if all(f(r) for f in query.filters)]

        if query.op == 'update':
            for row in matched:
                row.update(query.payload)
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)

        if query.op == 'delete':
            removed = {id(r) for r in matched}
            self.tables[query.table] = [r for r in rows if id(r) not in removed]
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)

        if query.order_by:
            column, desc = query.order_by
            present = sorted((r for r in matched if r.get(column) is not None),
                             key=lambda r: r[column], reverse=desc)
            matched = present + [r for r in matched if r.get(column) is None]

        count = len(matched) if query.count else None
        if query.limit_n is not None:
            matched = matched[:query.limit_n]
        return SimpleNamespace(data=[dict(r) for r in matched], count=count)


@pytest.fixture
def fake_supabase(monkeypatch):
    backend = FakeSupabase()
    monkeypatch.setattr(supabase_service, 'create_client', lambda url, key: FakeClient(backend))
    return backend


@pytest.fixture
def app(fake_supabase):
    return create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SUPABASE_URL': 'https://test-project.supabase.co',
        'SUPABASE_KEY': 'test-anon-key',
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def facility(fake_supabase):
    return fake_supabase.add_facility()


@pytest.fixture
def other_facility(fake_supabase):
    return fake_supabase.add_facility('Other Adult Day Care')


@pytest.fixture
def manager(fake_supabase, facility):
    return fake_supabase.add_user('mary@example.com', role='manager', facility_id=facility['id'],
                                  first_name='Mary', last_name='Manager')


@pytest.fixture
def staff(fake_supabase, facility):
    return fake_supabase.add_user('sam@example.com', role='staff', facility_id=facility['id'],
                                  first_name='Sam', last_name='Staff')


def signed_in_client(app, profile):
    client = app.test_client()
    response = client.post('/login', data={'email': profile['email'], 'password': PASSWORD})
    assert response.status_code == 302, response.data
    return client


@pytest.fixture
def manager_client(app, manager):
    return signed_in_client(app, manager)


@pytest.fixture
def staff_client(app, staff):
    return signed_in_client(app, staff)
