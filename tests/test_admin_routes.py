"""
API tests for the admin CRUD endpoints (resources, actions, roles,
condition codes) and the dashboard
"""
from extensions import db
from models import Action, ConditionCode, Permission, Resource, Role


class TestAuth:

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}

    def test_login_with_bad_password(self, client, admin_user):
        response = client.post('/auth/login', json={'username': 'admin_user', 'password': 'nope'})
        assert response.status_code == 401

    def test_me(self, client, admin_auth_headers):
        response = client.get('/auth/me', headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.get_json()['username'] == 'admin_user'

    def test_admin_endpoints_require_token(self, client):
        for url in ('/resources', '/actions', '/roles', '/condition-codes', '/permissions',
                    '/dashboard/stats'):
            assert client.get(url).status_code == 401

    def test_admin_endpoints_reject_regular_users(self, client, auth_headers):
        response = client.get('/resources', headers=auth_headers)
        assert response.status_code == 403


class TestResourceRoutes:

    def test_list_resources(self, client, admin_auth_headers, abac_data):
        response = client.get('/resources', headers=admin_auth_headers)

        assert response.status_code == 200
        names = [r['name'] for r in response.get_json()['resources']]
        assert names == ['documents', 'reports']

    def test_create_resource(self, client, admin_auth_headers):
        response = client.post('/resources', json={'name': '  invoices '}, headers=admin_auth_headers)

        assert response.status_code == 201
        data = response.get_json()
        assert data['name'] == 'invoices'
        assert db.session.get(Resource, data['id']) is not None

    def test_create_resource_without_name(self, client, admin_auth_headers):
        response = client.post('/resources', json={'name': ''}, headers=admin_auth_headers)

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Resource name is required'

    def test_get_resource_includes_actions(self, client, admin_auth_headers, abac_data):
        response = client.get(f"/resources/{abac_data['reports']}", headers=admin_auth_headers)

        assert response.status_code == 200
        actions = response.get_json()['actions']
        assert sorted(a['name'] for a in actions) == ['delete', 'update', 'view']

    def test_get_missing_resource(self, client, admin_auth_headers):
        response = client.get('/resources/missing', headers=admin_auth_headers)
        assert response.status_code == 404

    def test_update_resource(self, client, admin_auth_headers, abac_data):
        response = client.put(f"/resources/{abac_data['documents']}", json={'name': 'files'},
                              headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.get_json()['name'] == 'files'

    def test_delete_resource_cascades(self, client, admin_auth_headers, abac_data):
        response = client.delete(f"/resources/{abac_data['reports']}", headers=admin_auth_headers)

        assert response.status_code == 200
        deleted = response.get_json()['deleted']
        assert (deleted['resources'], deleted['actions'], deleted['permissions']) == (1, 3, 2)
        assert Action.query.filter_by(resource_id=abac_data['reports']).count() == 0
        assert Permission.query.count() == 0


class TestActionRoutes:

    def test_standard_actions(self, client, admin_auth_headers):
        response = client.get('/actions/standard', headers=admin_auth_headers)

        ids = [a['id'] for a in response.get_json()['standard_actions']]
        assert ids == ['create', 'list', 'view', 'update', 'delete']

    def test_list_actions_for_resource(self, client, admin_auth_headers, abac_data):
        response = client.get(f"/actions?resource_id={abac_data['documents']}",
                              headers=admin_auth_headers)

        actions = response.get_json()['actions']
        assert len(actions) == 1
        assert actions[0]['name'] == 'archive'
        assert actions[0]['resource_name'] == 'documents'

    def test_create_standard_and_custom_actions(self, client, admin_auth_headers, abac_data):
        response = client.post('/actions', json={
            'resource_id': abac_data['documents'],
            'standard_actions': ['create', 'list'],
            'custom_actions': ['export', 'create'],
        }, headers=admin_auth_headers)

        assert response.status_code == 201
        data = response.get_json()
        assert data['count'] == 3
        assert [a['name'] for a in data['actions']] == ['create', 'list', 'export']
        assert Action.query.filter_by(resource_id=abac_data['documents']).count() == 4

    def test_create_single_named_action(self, client, admin_auth_headers, abac_data):
        response = client.post('/actions', json={
            'resource_id': abac_data['documents'],
            'name': 'share',
        }, headers=admin_auth_headers)

        assert response.status_code == 201
        assert response.get_json()['actions'][0]['name'] == 'share'

    def test_create_without_selection(self, client, admin_auth_headers, abac_data):
        response = client.post('/actions', json={'resource_id': abac_data['documents']},
                               headers=admin_auth_headers)

        assert response.status_code == 400
        assert response.get_json()['error'] == (
            "Please select at least one action or add a custom action"
        )

    def test_create_unknown_standard_action(self, client, admin_auth_headers, abac_data):
        response = client.post('/actions', json={
            'resource_id': abac_data['documents'],
            'standard_actions': ['destroy'],
        }, headers=admin_auth_headers)

        assert response.status_code == 400

    def test_create_for_missing_resource(self, client, admin_auth_headers):
        response = client.post('/actions', json={
            'resource_id': 'missing',
            'standard_actions': ['view'],
        }, headers=admin_auth_headers)

        assert response.status_code == 404

    def test_rename_action(self, client, admin_auth_headers, abac_data):
        response = client.put(f"/actions/{abac_data['archive']}", json={'name': 'store'},
                              headers=admin_auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['name'] == 'store'
        assert data['resource_id'] == abac_data['documents']

    def test_delete_action_removes_permissions(self, client, admin_auth_headers, abac_data):
        response = client.delete(f"/actions/{abac_data['view']}", headers=admin_auth_headers)

        assert response.status_code == 200
        deleted = response.get_json()['deleted']
        assert (deleted['actions'], deleted['permissions']) == (1, 1)
        assert db.session.get(Permission, abac_data['view_grant']) is None


class TestRoleRoutes:

    def test_role_crud(self, client, admin_auth_headers):
        response = client.post('/roles', json={'name': 'auditor'}, headers=admin_auth_headers)
        assert response.status_code == 201
        role_id = response.get_json()['id']

        response = client.put(f'/roles/{role_id}', json={'name': 'external auditor'},
                              headers=admin_auth_headers)
        assert response.get_json()['name'] == 'external auditor'

        response = client.get(f'/roles/{role_id}', headers=admin_auth_headers)
        assert response.status_code == 200

        response = client.delete(f'/roles/{role_id}', headers=admin_auth_headers)
        assert response.status_code == 200
        assert db.session.get(Role, role_id) is None

    def test_delete_role_removes_permissions(self, client, admin_auth_headers, abac_data):
        response = client.delete(f"/roles/{abac_data['editor']}", headers=admin_auth_headers)

        deleted = response.get_json()['deleted']
        assert (deleted['roles'], deleted['permissions']) == (1, 1)
        assert db.session.get(Permission, abac_data['conditional_grant']) is None
        assert db.session.get(Permission, abac_data['view_grant']) is not None

    def test_update_missing_role(self, client, admin_auth_headers):
        response = client.put('/roles/missing', json={'name': 'x'}, headers=admin_auth_headers)

        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'


class TestConditionCodeRoutes:

    def test_create_valid_condition(self, client, admin_auth_headers):
        response = client.post('/condition-codes', json={
            'name': 'business_hours',
            'description': 'Weekdays 9-18',
            'expression': "return attributes.hour >= 9 && attributes.hour < 18;",
        }, headers=admin_auth_headers)

        assert response.status_code == 201
        data = response.get_json()
        assert data['validation'] == {'valid': True, 'message': None}

    def test_invalid_condition_is_stored_with_warning(self, client, admin_auth_headers):
        response = client.post('/condition-codes', json={
            'name': 'broken',
            'expression': "return attributes.userId === ;",
        }, headers=admin_auth_headers)

        assert response.status_code == 201
        data = response.get_json()
        assert data['validation']['valid'] is False
        assert db.session.get(ConditionCode, data['id']).expression == "return attributes.userId === ;"

    def test_validate_endpoint(self, client, admin_auth_headers):
        response = client.post('/condition-codes/validate', json={'expression': 'return (;'},
                               headers=admin_auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['valid'] is False
        assert data['message']

    def test_update_expression(self, client, admin_auth_headers, abac_data):
        response = client.put(f"/condition-codes/{abac_data['condition']}", json={
            'name': 'is_user456',
            'expression': "return attributes.userId === 'user456';",
        }, headers=admin_auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['name'] == 'is_user456'
        assert data['description'] == 'Only user123'
        assert data['validation']['valid'] is True

    def test_delete_condition_keeps_permissions(self, client, admin_auth_headers, abac_data):
        response = client.delete(f"/condition-codes/{abac_data['condition']}",
                                 headers=admin_auth_headers)

        assert response.status_code == 200
        permission = db.session.get(Permission, abac_data['conditional_grant'])
        assert permission is not None
        assert permission.condition_code_id is None

        # Without a usable condition the base grant alone decides
        response = client.post('/permissions/test', json={
            'role_id': abac_data['editor'],
            'resource_id': abac_data['reports'],
            'action_id': abac_data['update'],
            'attributes': {'userId': 'other'},
        }, headers=admin_auth_headers)
        data = response.get_json()
        assert data['condition_applied'] is False
        assert data['final_result'] is True


class TestDashboardRoutes:

    def test_stats(self, client, admin_auth_headers, abac_data):
        response = client.get('/dashboard/stats', headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.get_json() == {
            'resources': 2,
            'actions': 4,
            'roles': 2,
            'condition_codes': 1,
            'permissions': 2,
        }
