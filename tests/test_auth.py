"""
Tests for session authentication and route gating.
"""


class TestLogin:

    def test_login_success_hides_password(self, client, admin_user):
        response = client.post('/api/auth/login', json={'username': 'admin', 'password': 'admin123'})

        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['data']['username'] == 'admin'
        assert body['data']['isAdmin'] is True
        assert 'password' not in body['data']

    def test_wrong_password_is_401_without_session(self, client, admin_user):
        response = client.post('/api/auth/login', json={'username': 'admin', 'password': 'nope'})

        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'message': 'Invalid username or password'}
        assert client.get('/api/auth/me').status_code == 401

    def test_unknown_user_is_401(self, client):
        response = client.post('/api/auth/login', json={'username': 'ghost', 'password': 'whatever'})
        assert response.status_code == 401

    def test_failed_login_ends_existing_session(self, user_client):
        assert user_client.get('/api/auth/me').status_code == 200

        user_client.post('/api/auth/login', json={'username': 'jane', 'password': 'wrong'})

        assert user_client.get('/api/auth/me').status_code == 401

    def test_missing_fields_is_400(self, client):
        response = client.post('/api/auth/login', json={'username': 'admin'})
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Username and password are required'


class TestSession:

    def test_me_returns_session_user(self, user_client, regular_user):
        body = user_client.get('/api/auth/me').get_json()
        assert body['data'] == {'id': regular_user['id'], 'username': 'jane', 'isAdmin': False}

    def test_logout_clears_session(self, admin_client):
        response = admin_client.post('/api/auth/logout')
        assert response.get_json() == {'success': True, 'message': 'Logged out successfully'}
        assert admin_client.get('/api/auth/me').status_code == 401

    def test_expired_session_is_rejected(self, admin_client):
        with admin_client.session_transaction() as sess:
            sess['login_time'] = '2000-01-01T00:00:00'

        assert admin_client.get('/api/bookings').status_code == 401


class TestRegister:

    def test_register_creates_regular_user(self, client, fake_db):
        response = client.post('/api/auth/register', json={
            'username': 'newbie', 'password': 'longpass', 'email': 'New@Example.com', 'isAdmin': True
        })

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['isAdmin'] is False
        assert data['email'] == 'new@example.com'
        assert fake_db.get_user_by_username('newbie')['password'] != 'longpass'
        assert client.get('/api/auth/me').get_json()['data']['username'] == 'newbie'

    def test_duplicate_username(self, client, regular_user):
        response = client.post('/api/auth/register', json={'username': 'jane', 'password': 'longpass'})
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Username already exists'

    def test_short_password(self, client):
        response = client.post('/api/auth/register', json={'username': 'shorty', 'password': '123'})
        assert response.status_code == 400


class TestAdminGate:

    def test_anonymous_gets_401(self, client):
        response = client.get('/api/bookings')
        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'message': 'Not authenticated'}

    def test_non_admin_gets_403(self, user_client):
        response = user_client.get('/api/bookings')
        assert response.status_code == 403
        assert response.get_json()['success'] is False

    def test_admin_passes(self, admin_client):
        assert admin_client.get('/api/bookings').status_code == 200

    def test_my_bookings_requires_login(self, client):
        assert client.get('/api/bookings/mine').status_code == 401
