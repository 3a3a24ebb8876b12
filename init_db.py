#!/usr/bin/env python3
"""
Initialise les tables ABAC (ressources, actions, rôles, codes de condition,
permissions) et la table des comptes admin.

Usage:
    python init_db.py            # crée les tables manquantes
    python init_db.py --reset    # supprime puis recrée toutes les tables
"""

import argparse

from sqlalchemy import inspect

from app import create_app
from extensions import db
import models  # noqa: F401  enregistre tous les modèles


def init_database(reset=False):
    app = create_app()

    with app.app_context():
        if reset:
            print("⚠️  Suppression de toutes les tables ABAC...")
            db.drop_all()

        db.create_all()

        tables = sorted(inspect(db.engine).get_table_names())
        print(f"✅ Base prête ({len(tables)} tables):")
        for table in tables:
            rows = db.session.execute(db.text(f'SELECT COUNT(*) FROM "{table}"')).scalar()
            print(f"  - {table}: {rows} enregistrement(s)")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialise la base ABAC")
    parser.add_argument("--reset", action="store_true", help="drop all tables before creating them")
    args = parser.parse_args()
    init_database(reset=args.reset)
