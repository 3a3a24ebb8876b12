"""
Pytest configuration and fixtures for backend tests
"""
import os
import tempfile

import pytest

from app import create_app
from config import TestingConfig
from extensions import db
from models import Action, ConditionCode, Permission, Resource, Role, User


@pytest.fixture
def app():
    """Create application for testing"""
    # Create a temporary database file
    db_fd, db_path = tempfile.mkstemp()

    class TempDatabaseConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{db_path}'

    app = create_app(TempDatabaseConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

    # Cleanup
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def admin_user(app):
    """Create admin user"""
    user = User(username='admin_user', email='admin@example.com', role='ADMIN')
    user.set_password('admin_password')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def regular_user(app):
    user = User(username='test_user', email='test@example.com', role='USER')
    user.set_password('test_password')
    db.session.add(user)
    db.session.commit()
    return user


def _login(client, username, password):
    response = client.post('/auth/login', json={
        'username': username,
        'password': password
    })

    assert response.status_code == 200
    token = response.get_json()['access_token']

    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_auth_headers(client, admin_user):
    """Get authentication headers for admin user"""
    return _login(client, 'admin_user', 'admin_password')


@pytest.fixture
def auth_headers(client, regular_user):
    """Get authentication headers for a non-admin user"""
    return _login(client, 'test_user', 'test_password')


@pytest.fixture
def abac_data(app):
    """
    Sample ABAC data: a ``reports`` resource with view/delete actions,
    viewer and editor roles, and an ``is_user123`` condition code.
    """
    reports = Resource(name='reports')
    documents = Resource(name='documents')
    db.session.add_all([reports, documents])
    db.session.flush()

    view = Action(name='view', resource_id=reports.id)
    delete = Action(name='delete', resource_id=reports.id)
    update = Action(name='update', resource_id=reports.id)
    archive = Action(name='archive', resource_id=documents.id)
    viewer = Role(name='viewer')
    editor = Role(name='editor')
    condition = ConditionCode(
        name='is_user123',
        description='Only user123',
        expression="return attributes.userId === 'user123';",
    )
    db.session.add_all([view, delete, update, archive, viewer, editor, condition])
    db.session.flush()

    view_grant = Permission(role_id=viewer.id, resource_id=reports.id, action_id=view.id,
                            has_permission=True, has_condition=False)
    conditional_grant = Permission(role_id=editor.id, resource_id=reports.id, action_id=update.id,
                                   has_permission=True, has_condition=True,
                                   condition_code_id=condition.id)
    db.session.add_all([view_grant, conditional_grant])
    db.session.commit()

    return {
        'reports': reports.id,
        'documents': documents.id,
        'view': view.id,
        'delete': delete.id,
        'update': update.id,
        'archive': archive.id,
        'viewer': viewer.id,
        'editor': editor.id,
        'condition': condition.id,
        'view_grant': view_grant.id,
        'conditional_grant': conditional_grant.id,
    }
