"""One-time bootstrap script to create the first admin user.

Usage:
  python scripts/create_admin.py --username admin --full-name "Shop Owner" --password secret
Or provide via env: ADMIN_USERNAME, ADMIN_FULL_NAME, ADMIN_PASSWORD
"""
import os
import argparse
from getpass import getpass

from printshop_core.app.db import SessionLocal, create_db_and_tables
from printshop_core.app import models
from printshop_core.app.deps import get_password_hash


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--username')
    parser.add_argument('--full-name')
    parser.add_argument('--password')
    args = parser.parse_args()

    username = args.username or os.getenv('ADMIN_USERNAME')
    full_name = args.full_name or os.getenv('ADMIN_FULL_NAME') or 'Admin'
    password = args.password or os.getenv('ADMIN_PASSWORD')
    if not username:
        username = input('Username: ').strip()
    if not password:
        password = getpass('Password: ')
    if len(password) < 6:
        raise SystemExit('Password must be at least 6 characters')

    create_db_and_tables()
    db = SessionLocal()
    try:
        existing = db.query(models.User).filter(models.User.username == username).first()
        if existing:
            print('User already exists:', username)
            return
        user = models.User(
            full_name=full_name,
            username=username,
            password_hash=get_password_hash(password),
            role=models.Role.ADMIN.value,
        )
        db.add(user)
        db.commit()
        print('Created admin user:', username)
    finally:
        db.close()


if __name__ == '__main__':
    main()
