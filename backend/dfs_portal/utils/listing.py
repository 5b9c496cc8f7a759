from __future__ import annotations
from typing import Iterable, List, Tuple
from flask import request, abort, make_response
from sqlalchemy.orm import Query
from dfs_portal.config.pagination import normalize_pagination
import hashlib


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def compute_etag(ids: Iterable, total: int, limit: int, offset: int, latest: str = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: List[dict], total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows),
        }
    }


def make_list_response(rows: List[dict], total: int, limit: int, offset: int, latest: str = ''):
    """JSON list response carrying an ETag; 304 when If-None-Match already matches."""
    etag = compute_etag([r.get('id') for r in rows], total, limit, offset, latest)
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag:
        resp = make_response('', 304)
    else:
        resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    return resp
