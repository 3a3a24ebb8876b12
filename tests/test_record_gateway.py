"""
Tests for the SQLAlchemy-backed record gateway
"""
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from extensions import db
from models import Action, Permission, Resource
from services.exceptions import (
    DuplicatePermissionError,
    EntityNotFoundError,
    GatewayError,
    InvalidRequestError,
)
from services.record_gateway import RecordGateway


class TestRecordGateway:

    def test_create_and_get(self, app):
        gateway = RecordGateway()
        role = gateway.create('roles', {'name': 'auditor'})

        assert role.id
        assert gateway.get('roles', role.id).name == 'auditor'
        assert gateway.get('roles', 'missing') is None
        assert gateway.get('roles', None) is None

    def test_create_ignores_unknown_fields(self, app):
        role = RecordGateway().create('roles', {'name': 'auditor', 'id': 'forced', 'color': 'red'})
        assert role.id != 'forced'

    def test_list_all_sorted_by_name(self, app, abac_data):
        names = [r.name for r in RecordGateway().list_all('resources')]
        assert names == ['documents', 'reports']

    def test_list_all_with_filter(self, app, abac_data):
        actions = RecordGateway().list_all('actions', {'resource_id': abac_data['reports']})
        assert sorted(a.name for a in actions) == ['delete', 'update', 'view']

    def test_get_one_by_triple(self, app, abac_data):
        gateway = RecordGateway()
        permission = gateway.get_one('permissions', {
            'role_id': abac_data['viewer'],
            'resource_id': abac_data['reports'],
            'action_id': abac_data['view'],
        })
        assert permission.id == abac_data['view_grant']

        assert gateway.get_one('permissions', {
            'role_id': abac_data['viewer'],
            'resource_id': abac_data['reports'],
            'action_id': abac_data['delete'],
        }) is None

    def test_count(self, app, abac_data):
        gateway = RecordGateway()
        assert gateway.count('actions') == 4
        assert gateway.count('permissions') == 2

    def test_update_missing_record(self, app):
        with pytest.raises(EntityNotFoundError):
            RecordGateway().update('roles', 'missing', {'name': 'x'})

    def test_unknown_collection(self, app):
        with pytest.raises(InvalidRequestError) as exc_info:
            RecordGateway().list_all('tournaments')
        assert exc_info.value.code == 'UNKNOWN_COLLECTION'

    def test_same_triple_twice_is_a_duplicate(self, app, abac_data):
        gateway = RecordGateway()
        triple = {
            'role_id': abac_data['viewer'],
            'resource_id': abac_data['reports'],
            'action_id': abac_data['delete'],
            'has_permission': True,
        }
        gateway.create('permissions', triple)

        with pytest.raises(DuplicatePermissionError) as exc_info:
            gateway.create('permissions', triple)

        assert exc_info.value.status_code == 409
        assert exc_info.value.code == 'DUPLICATE_PERMISSION'
        # La session reste utilisable après le rollback
        assert gateway.count('permissions') == 3

    def test_update_onto_existing_triple_is_a_duplicate(self, app, abac_data):
        gateway = RecordGateway()

        with pytest.raises(DuplicatePermissionError):
            gateway.update('permissions', abac_data['conditional_grant'], {
                'role_id': abac_data['viewer'],
                'action_id': abac_data['view'],
            })

        permission = gateway.get('permissions', abac_data['conditional_grant'])
        assert permission.role_id == abac_data['editor']
        assert permission.action_id == abac_data['update']

    def test_create_many(self, app, abac_data):
        actions = RecordGateway().create_many('actions', [
            {'name': 'export', 'resource_id': abac_data['documents']},
            {'name': 'share', 'resource_id': abac_data['documents']},
        ])
        assert len(actions) == 2
        assert Action.query.filter_by(resource_id=abac_data['documents']).count() == 3


class TestCascadingDeletes:

    def test_delete_resource_removes_actions_and_permissions(self, app, abac_data):
        deleted = RecordGateway().delete('resources', abac_data['reports'])

        assert deleted['resources'] == 1
        assert deleted['actions'] == 3
        assert deleted['permissions'] == 2
        assert db.session.get(Resource, abac_data['reports']) is None
        assert Action.query.filter_by(resource_id=abac_data['reports']).count() == 0
        assert Permission.query.count() == 0
        # Other resources are untouched
        assert db.session.get(Action, abac_data['archive']) is not None

    def test_delete_action_removes_its_permissions(self, app, abac_data):
        deleted = RecordGateway().delete('actions', abac_data['view'])

        assert deleted['permissions'] == 1
        assert db.session.get(Permission, abac_data['view_grant']) is None
        assert db.session.get(Permission, abac_data['conditional_grant']) is not None

    def test_delete_role_removes_its_permissions(self, app, abac_data):
        deleted = RecordGateway().delete('roles', abac_data['editor'])

        assert deleted['roles'] == 1
        assert deleted['permissions'] == 1
        assert db.session.get(Permission, abac_data['conditional_grant']) is None

    def test_delete_condition_code_clears_references(self, app, abac_data):
        RecordGateway().delete('conditionCodes', abac_data['condition'])

        permission = db.session.get(Permission, abac_data['conditional_grant'])
        assert permission is not None
        assert permission.has_condition is True
        assert permission.condition_code_id is None

    def test_delete_missing_record(self, app):
        with pytest.raises(EntityNotFoundError):
            RecordGateway().delete('resources', 'missing')


class TestStorageFailures:

    def _broken_session(self):
        session = MagicMock()
        error = OperationalError("SELECT 1", {}, Exception("connection refused"))
        session.get.side_effect = error
        session.query.side_effect = error
        session.commit.side_effect = error
        return session

    def test_read_failure_becomes_gateway_error(self):
        session = self._broken_session()
        gateway = RecordGateway(session=session)

        with pytest.raises(GatewayError) as exc_info:
            gateway.get_one('permissions', {'role_id': 'r'})

        assert exc_info.value.status_code == 503
        assert exc_info.value.code == 'STORAGE_ERROR'
        session.rollback.assert_called_once()

    def test_write_failure_becomes_gateway_error(self):
        session = self._broken_session()
        session.get.side_effect = None
        gateway = RecordGateway(session=session)

        with pytest.raises(GatewayError):
            gateway.create('roles', {'name': 'x'})

        with pytest.raises(GatewayError):
            gateway.count('roles')

        assert session.rollback.call_count == 2
