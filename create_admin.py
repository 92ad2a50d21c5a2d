#!/usr/bin/env python3
"""
Create or update an administrator account for the library backend.
Usage:
  python create_admin.py --email admin@example.com --first-name Ada --password secret

Administrators are never created through the HTTP API. This script uses the
app's SQLAlchemy configuration, creates the admin if missing, and otherwise
resets the password hash (and first name, when given).
"""
import argparse
import sys

from app import create_app
from models import db, Admin
from services import PasswordHasher


def main(argv=None):
    parser = argparse.ArgumentParser(description='Create or update an admin account')
    parser.add_argument('--email', '-e', required=True, help='admin email (login name)')
    parser.add_argument('--password', '-p', required=True, help='admin password')
    parser.add_argument('--first-name', '-n', help='name shown after login')
    parser.add_argument('--db-uri', help='optional DB URI to override app config')
    args = parser.parse_args(argv)

    config = {}
    if args.db_uri:
        config['SQLALCHEMY_DATABASE_URI'] = args.db_uri

    app = create_app(config)
    hasher = PasswordHasher(method=app.config['PASSWORD_HASH_METHOD'])
    with app.app_context():
        db.create_all()
        admin = Admin.query.filter_by(email=args.email).first()
        if not admin:
            admin = Admin(
                email=args.email,
                first_name=args.first_name or args.email.split('@', 1)[0],
                password_hash=hasher.hash(args.password),
            )
            db.session.add(admin)
            db.session.commit()
            print(f"Created new admin: {args.email}")
            return 0
        admin.password_hash = hasher.hash(args.password)
        if args.first_name:
            admin.first_name = args.first_name
        db.session.commit()
        print(f"Updated existing admin '{args.email}' and set new password")
        return 0


if __name__ == '__main__':
    sys.exit(main())
