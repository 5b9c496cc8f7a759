import pytest
from dfs_portal.constants.permissions import PORTAL_ROLES
from dfs_portal.services.user_validation import (
    scan, auto_fix, check_admin_coverage, summarize, filter_issues, NotAutoFixableError, ValidationIssue,
)


def _p(id, email='u@x.com', role='employee', employee_id='E', **kw):
    row = {'id': id, 'email': email, 'role': role, 'employee_id': employee_id}
    row.update(kw)
    return row


def test_duplicate_email_example():
    profiles = [
        {'id': 1, 'email': 'a@x.com', 'role': 'employee', 'employee_id': 'E1'},
        {'id': 2, 'email': 'a@x.com', 'role': 'manager', 'employee_id': 'E2'},
    ]
    issues = scan(profiles)
    assert len(issues) == 1
    issue = issues[0]
    assert (issue.type, issue.severity, issue.user_id) == ('duplicate_email', 'high', 2)
    assert issue.auto_fixable is False
    assert issue.id == 'duplicate_email_2'


def test_n_profiles_sharing_email_yield_n_minus_one_issues():
    profiles = [_p(1, 'Dup@X.com', employee_id='E1'), _p(2, 'dup@x.com', employee_id='E2'),
                _p(3, ' DUP@x.com ', employee_id='E3'), _p(4, 'other@x.com', employee_id='E4')]
    dups = [i for i in scan(profiles) if i.type == 'duplicate_email']
    assert [i.user_id for i in dups] == [2, 3]


def test_scan_is_deterministic():
    profiles = [_p(1, 'a@x.com'), _p(2, 'a@x.com', role='boss'), _p(3, None, role=None, employee_id=None),
                _p(4, 'z@x.com', role='admin', station_access=['S1', 'S2'])]
    first = scan(profiles)
    second = scan(list(profiles))
    assert first == second
    assert [(i.id, i.type, i.severity) for i in first] == [(i.id, i.type, i.severity) for i in second]


def test_invalid_role_is_critical_and_fixable():
    issues = scan([_p(7, role='Supervisor')])
    assert len(issues) == 1
    issue = issues[0]
    assert issue.type == 'invalid_role'
    assert issue.severity == 'critical'
    assert issue.auto_fixable is True
    assert 'Supervisor' in issue.description


def test_missing_role_is_missing_data_only():
    issues = scan([_p(3, email=None, role=None)])
    assert len(issues) == 1
    issue = issues[0]
    assert issue.type == 'missing_data'
    assert issue.severity == 'high'
    assert issue.auto_fixable is False
    assert 'email' in issue.description and 'role' in issue.description
    assert 'employee_id' not in issue.description


def test_blank_strings_count_as_missing():
    issues = scan([_p(5, email='  ', employee_id='')])
    assert len(issues) == 1
    assert issues[0].description == 'Missing required fields: employee_id, email'


def test_role_conflict_for_admin_with_multiple_stations():
    profiles = [_p(1, 'a@x.com', role='admin', station_access=['S1', 'S2']),
                _p(2, 'b@x.com', role='admin', station_access=['S1']),
                _p(3, 'c@x.com', role='manager', station_access=['S1', 'S2'])]
    issues = scan(profiles)
    assert [(i.type, i.user_id, i.severity, i.auto_fixable) for i in issues] == [('role_conflict', 1, 'medium', True)]


def test_legacy_vocabulary_flags_portal_roles_and_vice_versa():
    assert scan([_p(1, role='Administrator')])[0].type == 'invalid_role'
    assert scan([_p(1, role='Administrator')], vocabulary=PORTAL_ROLES) == []
    assert scan([_p(1, role='admin')], vocabulary=PORTAL_ROLES)[0].type == 'invalid_role'
    conflict = scan([_p(1, role='Administrator', station_access=['A', 'B'])], vocabulary=PORTAL_ROLES)
    assert [i.type for i in conflict] == ['role_conflict']


def test_non_list_input_yields_no_issues():
    assert scan(None) == []
    assert scan('not-a-list') == []
    for odd in (5, 2.5, True, object(), {'id': 1, 'email': 'a@x.com'}):
        assert scan(odd) == []
        assert summarize(odd, [])['total_users'] == 0
        assert check_admin_coverage(odd)[0].id == 'admin_protection_none'
    assert len(scan(p for p in [_p(1, 'a@x.com'), _p(2, 'a@x.com')])) == 1
    assert check_admin_coverage(None)[0].severity == 'critical'


def test_malformed_entries_do_not_abort_scan():
    class Row:
        id = 9
        email = 'obj@x.com'
        role = 'employee'
        employee_id = 'E9'

    issues = scan([None, {'id': 2}, Row(), _p(3, 'obj@x.com')])
    types = [(i.type, i.user_id) for i in issues]
    assert ('duplicate_email', 3) in types
    assert ('missing_data', None) in types
    assert ('missing_data', 2) in types


def test_detected_at_is_stamped_when_given():
    issues = scan([_p(1, role='x')], detected_at='2026-01-01T00:00:00Z')
    assert issues[0].detected_at == '2026-01-01T00:00:00Z'


def test_auto_fix_patches():
    conflict, = scan([_p(1, role='admin', station_access=['A', 'B'])])
    assert auto_fix(conflict) == {'station_access': []}
    invalid, = scan([_p(2, role='root')])
    assert auto_fix(invalid) == {'role': 'employee'}
    assert auto_fix(invalid, PORTAL_ROLES) == {'role': 'Employee'}


def test_auto_fix_refuses_duplicate_email():
    dup = scan([_p(1, 'a@x.com'), _p(2, 'a@x.com')])[0]
    with pytest.raises(NotAutoFixableError) as exc:
        auto_fix(dup)
    assert exc.value.code == 'NOT_AUTO_FIXABLE'
    assert exc.value.issue is dup


def test_auto_fix_refuses_missing_data_and_forged_flags():
    missing = scan([_p(1, email=None)])[0]
    with pytest.raises(NotAutoFixableError):
        auto_fix(missing)
    forged = ValidationIssue(id='duplicate_email_1', type='duplicate_email', severity='high',
                             user_id=1, description='x', auto_fixable=True)
    with pytest.raises(NotAutoFixableError):
        auto_fix(forged)


def test_admin_coverage_tiers():
    none = check_admin_coverage([_p(1, role='Administrator', is_active=False), _p(2, role='Management', is_active=True)])
    assert [(i.type, i.severity) for i in none] == [('admin_protection', 'critical')]

    one = check_admin_coverage([_p(1, role='Administrator', is_active=True), _p(2, role='Administrator', is_active=False)])
    assert len(one) == 1
    assert one[0].severity == 'error'
    assert one[0].user_id == 1
    assert 'lock you out' in one[0].description

    two = check_admin_coverage([_p(1, role='Administrator', is_active=True), _p(2, role='Administrator', is_active=True)])
    assert len(two) == 1
    assert two[0].severity == 'info'
    assert two[0].description.startswith('2 administrators')


def test_admin_coverage_ignores_legacy_admin_role():
    issues = check_admin_coverage([_p(1, role='admin', is_active=True)])
    assert issues[0].severity == 'critical'


def test_summarize_counts():
    profiles = [_p(1, 'a@x.com', is_active=True), _p(2, 'a@x.com', is_active=True),
                _p(3, 'c@x.com', role='boss', is_active=True), _p(4, None, is_active=True),
                _p(5, 'e@x.com', is_active=False)]
    issues = scan(profiles)
    stats = summarize(profiles, issues)
    assert stats == {
        'total_users': 5,
        'valid_users': 3,
        'issues_found': 3,
        'critical_issues': 1,
        'auto_fixable_issues': 1,
    }


def test_filter_issues():
    issues = scan([_p(1, 'a@x.com', employee_id='EMP-1'), _p(2, 'a@x.com', employee_id='EMP-2'),
                   _p(3, 'c@x.com', role='boss', employee_id='EMP-3')])
    assert [i.type for i in filter_issues(issues, severity='critical')] == ['invalid_role']
    assert [i.type for i in filter_issues(issues, issue_type='duplicate_email')] == ['duplicate_email']
    assert [i.user_id for i in filter_issues(issues, search='emp-3')] == [3]
    assert len(filter_issues(issues, severity='All', issue_type='All')) == 2
    resolved = [issues[0].mark_resolved(), issues[1]]
    assert filter_issues(resolved) == [issues[1]]


def test_issue_serializes_to_plain_dict():
    issue = scan([_p(4, role='boss')])[0]
    body = issue.to_dict()
    assert body['id'] == 'invalid_role_4'
    assert body['resolved'] is False
    assert body['role'] == 'boss'
