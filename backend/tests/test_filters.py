import pytest
from werkzeug.exceptions import BadRequest
from dfs_portal.utils.filters import parse_bool, apply_filters


class RecordingQuery:
    def __init__(self):
        self.applied = []

    def narrow(self, name, value):
        self.applied.append((name, value))
        return self


SPECS = {
    'role': {'op': lambda q, v: q.narrow('role', v)},
    'is_active': {'coerce': parse_bool, 'op': lambda q, v: q.narrow('is_active', v)},
    'station': {'validate': lambda v: v.isupper(), 'op': lambda q, v: q.narrow('station', v)},
}


@pytest.mark.parametrize('raw,expected', [('1', True), ('Yes', True), (' false ', False), ('0', False)])
def test_parse_bool(raw, expected):
    assert parse_bool(raw) is expected


def test_parse_bool_rejects_other_values():
    with pytest.raises(ValueError):
        parse_bool('maybe')


def test_apply_filters_skips_empty_and_unknown(app_context):
    q = apply_filters(RecordingQuery(), SPECS, {'role': 'Employee', 'station': '', 'other': 'x', 'is_active': 'no'})
    assert q.applied == [('role', 'Employee'), ('is_active', False)]


def test_apply_filters_rejects_bad_values(app_context):
    with pytest.raises(BadRequest):
        apply_filters(RecordingQuery(), SPECS, {'is_active': 'sometimes'})
    with pytest.raises(BadRequest):
        apply_filters(RecordingQuery(), SPECS, {'station': 'north'})
