import pytest
from dfs_portal.config.settings import load_settings, PortalSettings
from tests.test_utils_seed import jwt_headers

SETTING_VARS = ('PROTECTED_ADMIN_EMAIL', 'SCAN_ROLE_VOCABULARY', 'ALERT_EMAIL_ENABLED',
                'ALERT_SMS_ENABLED', 'LICENSE_EXPIRY_ALERT_DAYS', 'LOW_STOCK_THRESHOLD')


@pytest.fixture()
def clean_env(monkeypatch):
    for name in SETTING_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    s = load_settings({})
    assert s.protected_admin_email == 'admin@dfs-portal.com'
    assert s.vocabulary.name == 'portal'
    assert s.notifications.license_expiry_days == 30
    assert s.notifications.sms_alerts is False


def test_env_then_config_precedence(clean_env):
    clean_env.setenv('PROTECTED_ADMIN_EMAIL', 'root@example.com')
    clean_env.setenv('LOW_STOCK_THRESHOLD', '3')
    clean_env.setenv('ALERT_SMS_ENABLED', 'yes')
    s = load_settings({'PROTECTED_ADMIN_EMAIL': 'owner@example.com', 'SCAN_ROLE_VOCABULARY': 'legacy'})
    assert s.protected_admin_email == 'owner@example.com'
    assert s.notifications.low_stock_threshold == 3
    assert s.notifications.sms_alerts is True
    assert s.vocabulary.admin == 'admin'


def test_bad_values_raise(clean_env):
    with pytest.raises(ValueError):
        load_settings({'SCAN_ROLE_VOCABULARY': 'klingon'})
    with pytest.raises(ValueError):
        load_settings({'LICENSE_EXPIRY_ALERT_DAYS': 'soon'})


def test_widgets_for_unknown_role_is_empty():
    assert PortalSettings().widgets_for('Visitor') == ()


def test_settings_endpoints(client, app_context):
    admin = client.get('/admin/settings', headers=jwt_headers(1, 'Administrator'))
    assert admin.status_code == 200
    assert admin.get_json()['protected_admin_email'] == 'admin@dfs-portal.com'
    assert client.get('/admin/settings', headers=jwt_headers(2, 'Management')).status_code == 200
    assert client.get('/admin/settings', headers=jwt_headers(3, 'Employee')).status_code == 403
    dash = client.get('/admin/settings/dashboard', headers=jwt_headers(3, 'Employee')).get_json()
    assert dash == {'role': 'Employee', 'widgets': ['sales_entry', 'deliveries']}
