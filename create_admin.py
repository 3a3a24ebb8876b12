#!/usr/bin/env python3
"""
Crée (ou promeut) le compte administrateur utilisé pour gérer les données ABAC.

Credentials come from the command line, then ADMIN_USERNAME / ADMIN_PASSWORD /
ADMIN_EMAIL, then the development defaults.
"""

import argparse
import os

from app import create_app
from extensions import db
from models.user import User


def create_admin_user(username, password, email=None):
    app = create_app()

    with app.app_context():
        user = User.query.filter_by(username=username).first()
        if user and user.is_admin:
            print(f"✅ {username} est déjà administrateur")
            return user

        if user:
            user.role = 'ADMIN'
            print(f"⬆️  {username} promu administrateur")
        else:
            user = User(username=username, email=email, role='ADMIN')
            user.set_password(password)
            db.session.add(user)
            print(f"✅ Administrateur {username} créé")

        db.session.commit()
        print(f"   ID: {user.id} | Email: {user.email or '-'}")
        return user


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the ABAC admin account")
    parser.add_argument("--username", default=os.getenv("ADMIN_USERNAME", "admin"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD", "admin123"))
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", "admin@abac.local"))
    args = parser.parse_args()
    create_admin_user(args.username, args.password, args.email)
