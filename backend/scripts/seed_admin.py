#!/usr/bin/env python
"""Idempotent first-time setup: default administrator account and profile.

Usage:
    python backend/scripts/seed_admin.py                    # seed normally
    python backend/scripts/seed_admin.py --dry-run          # run logic then rollback (no DB changes)
    python backend/scripts/seed_admin.py --scan             # print validation findings after seeding
    python backend/scripts/seed_admin.py --export-json      # dump role permission matrix (+checksum) to stdout
    python backend/scripts/seed_admin.py --export-json matrix.json --fail-if-changed <sha256>
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json, hashlib
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from dfs_portal import create_app, get_db  # type: ignore
from dfs_portal.models.authz import User, Base
from dfs_portal.models.user_profile import UserProfile
from dfs_portal.constants.permissions import Role, build_permission_matrix
from dfs_portal.config.settings import get_settings
from dfs_portal.services import user_validation


def ensure_admin(session, email: str, password: str, employee_id: str):
    """Create the administrator account and its profile when missing. Returns (user_created, profile_created)."""
    user_created = profile_created = False
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user:
        user = User(name='Administrator', email=email, password_hash='')
        user.set_password(password)
        session.add(user); session.flush()
        user_created = True
        print(f"[INFO] Created administrator account {email} with temporary password.")
    profile = session.execute(select(UserProfile).where(UserProfile.user_id == user.id)).scalars().first()
    if not profile:
        session.add(UserProfile(
            user_id=user.id,
            employee_id=employee_id,
            email=email,
            role=Role.ADMINISTRATOR.value,
            station=UserProfile.STATION_ALL,
            station_access=[],
            is_active=True,
        ))
        profile_created = True
    elif profile.role != Role.ADMINISTRATOR.value or not profile.is_active:
        print(f"[WARN] Profile {profile.id} for {email} is {profile.role} (active={profile.is_active}); leaving untouched")
    return user_created, profile_created


def print_findings(session):
    profiles = session.execute(select(UserProfile).order_by(UserProfile.id)).scalars().all()
    vocabulary = get_settings().vocabulary
    issues = user_validation.scan(profiles, vocabulary=vocabulary)
    issues += user_validation.check_admin_coverage(profiles)
    stats = user_validation.summarize(profiles, issues)
    print(f"\n[SCAN] {stats['total_users']} profiles ({vocabulary.name} roles), {stats['issues_found']} findings")
    for i in issues:
        fix = 'auto-fixable' if i.auto_fixable else 'manual'
        print(f" - [{i.severity.upper():8}] {i.id}: {i.description} ({fix})")


def matrix_payload():
    matrix = build_permission_matrix()
    canonical = json.dumps(matrix, sort_keys=True, separators=(',', ':'))
    checksum = hashlib.sha256(canonical.encode('utf-8')).hexdigest()
    return {
        'roles': matrix,
        'meta': {
            'grants_total': sum(len(a) for feats in matrix.values() for a in feats.values()),
            'roles_checksum_sha256': checksum,
            'role_names_sorted': sorted(matrix.keys()),
        }
    }, checksum


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed the default administrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_admin.py\n  dry run: seed_admin.py --dry-run\n  report: seed_admin.py --scan\n""")
    )
    p.add_argument('--email', default=os.getenv('SEED_ADMIN_EMAIL'), help='Administrator email (defaults to PROTECTED_ADMIN_EMAIL)')
    p.add_argument('--employee-id', default=os.getenv('SEED_ADMIN_EMPLOYEE_ID', 'ADMIN-001'))
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--scan', action='store_true', help='Print validation findings after seeding')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Export role permission matrix JSON (to FILE or stdout if omitted)')
    p.add_argument('--fail-if-changed', metavar='CHECKSUM', help='Exit 4 if the matrix checksum differs from provided value')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM user_profiles LIMIT 1'))
        except Exception:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())
        finally:
            session.commit()

        try:
            email = args.email or get_settings().protected_admin_email
            password = os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!')
            user_created, profile_created = ensure_admin(session, email, password, args.employee_id)
            if args.dry_run:
                session.flush()
                if args.scan:
                    print_findings(session)
                session.rollback()
                print(f"[DRY-RUN] (rolled back) account would create: {int(user_created)}, profile would create: {int(profile_created)}")
            else:
                session.commit()
                print(f"[DONE] account created: {int(user_created)}, profile created: {int(profile_created)}")
                if args.scan:
                    print_findings(session)

            if args.export_json is not None or args.fail_if_changed:
                payload, checksum = matrix_payload()
                if args.fail_if_changed and checksum != args.fail_if_changed:
                    print(f"[CHECKSUM] MISMATCH: expected {args.fail_if_changed} got {checksum}")
                    sys.exit(4)
                if args.fail_if_changed:
                    print(f"[CHECKSUM] OK: {checksum}")
                if args.export_json == '-':
                    print(json.dumps(payload, indent=2, sort_keys=True))
                elif args.export_json:
                    with open(args.export_json, 'w', encoding='utf-8') as f:
                        json.dump(payload, f, indent=2, sort_keys=True)
                    print(f"[INFO] Exported JSON to {args.export_json}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
