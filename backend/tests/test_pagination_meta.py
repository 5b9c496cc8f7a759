import pytest
from dfs_portal.config.pagination import normalize_pagination
from dfs_portal.utils.listing import compute_etag, build_list_payload


def test_defaults_and_clamping():
    assert normalize_pagination(None, None) == (25, 0)
    assert normalize_pagination('500', '-3') == (100, 0)
    assert normalize_pagination('0', '7') == (1, 7)
    assert normalize_pagination('', '') == (25, 0)


def test_non_integer_rejected():
    with pytest.raises(ValueError):
        normalize_pagination('ten', None)


def test_payload_and_etag():
    body = build_list_payload([{'id': 1}, {'id': 2}], total=5, limit=2, offset=0)
    assert body['pagination'] == {'total': 5, 'limit': 2, 'offset': 0, 'returned': 2}
    assert compute_etag([1, 2], 5, 2, 0) == compute_etag([1, 2], 5, 2, 0)
    assert compute_etag([1, 2], 5, 2, 0) != compute_etag([1, 2], 5, 2, 0, latest='2024-01-01')
