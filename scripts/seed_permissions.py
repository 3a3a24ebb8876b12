# scripts/seed_permissions.py
import os
import sys

# Ensure the backend package root is on sys.path so top-level imports resolve
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_BACKEND_ROOT = os.path.dirname(_SCRIPT_DIR)
if _BACKEND_ROOT not in sys.path:
    sys.path.insert(0, _BACKEND_ROOT)

from app import create_app
from extensions import db
from models import Action, ConditionCode, Permission, Resource, Role, STANDARD_ACTIONS


def _get_or_create(model, **fields):
    record = model.query.filter_by(**fields).first()
    if record:
        return record, False
    record = model(**fields)
    db.session.add(record)
    db.session.flush()
    return record, True


def seed_permissions():
    app = create_app()
    with app.app_context():
        created = 0

        # Ressources avec les actions standards
        resources = {}
        actions = {}
        for resource_name in ["reports", "documents", "users"]:
            resource, is_new = _get_or_create(Resource, name=resource_name)
            resources[resource_name] = resource
            created += is_new
            for standard in STANDARD_ACTIONS:
                action, is_new = _get_or_create(Action, name=standard['id'], resource_id=resource.id)
                actions[(resource_name, standard['id'])] = action
                created += is_new

        roles = {}
        for role_name in ["admin", "editor", "viewer"]:
            roles[role_name], is_new = _get_or_create(Role, name=role_name)
            created += is_new

        owner_only, is_new = _get_or_create(
            ConditionCode,
            name="owner_only",
            description="Grants access when the requesting user owns the record",
            expression="return attributes.userId === attributes.ownerId;",
        )
        created += is_new

        # (role, resource, action, has_permission, condition)
        grants = [
            ("viewer", "reports", "list", True, None),
            ("viewer", "reports", "view", True, None),
            ("editor", "documents", "update", True, owner_only),
            ("editor", "documents", "delete", True, owner_only),
        ]
        for resource_name in resources:
            for standard in STANDARD_ACTIONS:
                grants.append(("admin", resource_name, standard['id'], True, None))

        for role_name, resource_name, action_name, allowed, condition in grants:
            action = actions[(resource_name, action_name)]
            exists = Permission.query.filter_by(
                role_id=roles[role_name].id,
                resource_id=resources[resource_name].id,
                action_id=action.id,
            ).first()
            if not exists:
                db.session.add(Permission(
                    role_id=roles[role_name].id,
                    resource_id=resources[resource_name].id,
                    action_id=action.id,
                    has_permission=allowed,
                    has_condition=condition is not None,
                    condition_code_id=condition.id if condition else None,
                ))
                created += 1

        db.session.commit()
        print(f"✅ Données ABAC initialisées (créées: {created})")


if __name__ == "__main__":
    seed_permissions()
