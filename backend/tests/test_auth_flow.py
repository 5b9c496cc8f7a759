from tests.test_utils_seed import seed_account, ensure_user, login


def test_login_and_me_carry_role(client):
    seed_account('mgr@example.com', 'Management', station='North')
    token = login(client, 'mgr@example.com')
    me = client.get('/iam/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    body = me.get_json()
    assert body['email'] == 'mgr@example.com'
    assert body['access']['role'] == 'Management'
    assert body['access']['station'] == 'North'
    assert body['access']['can_access_admin_area'] is False
    assert body['access']['capabilities']['sales']['canEdit'] is True


def test_login_rejects_bad_credentials(client):
    ensure_user('someone@example.com')
    assert client.post('/iam/auth/login', json={'email': 'someone@example.com', 'password': 'nope'}).status_code == 401
    assert client.post('/iam/auth/login', json={'email': 'someone@example.com'}).status_code == 400


def test_login_rejects_inactive_account(client):
    ensure_user('gone@example.com', is_active=False)
    resp = client.post('/iam/auth/login', json={'email': 'gone@example.com', 'password': 'pw'})
    assert resp.status_code == 403


def test_account_without_profile_has_no_access(client):
    ensure_user('bare@example.com')
    token = login(client, 'bare@example.com')
    headers = {'Authorization': f'Bearer {token}'}
    body = client.get('/iam/auth/me', headers=headers).get_json()
    assert body['access']['role'] is None
    assert client.get('/profiles', headers=headers).status_code == 403


def test_feature_access_view(client):
    seed_account('emp@example.com', 'Employee')
    headers = {'Authorization': f"Bearer {login(client, 'emp@example.com')}"}
    denied = client.get('/iam/auth/access/salary', headers=headers).get_json()
    assert denied['permissions']['canView'] is False
    assert denied['message'].startswith('Employee access level does not permit salary')
    allowed = client.get('/iam/auth/access/sales', headers=headers).get_json()
    assert allowed['message'] is None
    assert client.get('/iam/auth/access/nope', headers=headers).status_code == 404
