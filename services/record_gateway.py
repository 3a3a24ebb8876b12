# services/record_gateway.py

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models.action import Action
from models.condition_code import ConditionCode
from models.permission import Permission
from models.resource import Resource
from models.role import Role
from services.exceptions import (
    DuplicatePermissionError,
    EntityNotFoundError,
    GatewayError,
    InvalidRequestError,
)

logger = logging.getLogger(__name__)

COLLECTIONS = {
    'resources': Resource,
    'actions': Action,
    'roles': Role,
    'conditionCodes': ConditionCode,
    'permissions': Permission,
}

# Colonnes modifiables par collection
WRITABLE_FIELDS = {
    'resources': ('name',),
    'actions': ('name', 'resource_id'),
    'roles': ('name',),
    'conditionCodes': ('name', 'description', 'expression'),
    'permissions': ('role_id', 'resource_id', 'action_id', 'has_permission',
                    'has_condition', 'condition_code_id'),
}


class RecordGateway:
    """
    Accès CRUD aux collections ABAC (resources, actions, roles,
    conditionCodes, permissions).

    Every storage failure is rolled back and re-raised as GatewayError so
    callers never mistake an unreachable store for an empty result.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _model(self, collection: str):
        model = COLLECTIONS.get(collection)
        if model is None:
            raise InvalidRequestError(f"Unknown collection: {collection}", 'UNKNOWN_COLLECTION')
        return model

    def _fail(self, operation: str, collection: str, error: Exception):
        self.session.rollback()
        logger.error(f"Storage error during {operation} on {collection}: {error}")
        raise GatewayError(f"Storage error during {operation} on {collection}") from error

    def _conflict(self, operation: str, collection: str, error: IntegrityError):
        """Une violation de contrainte sur le triplet est un doublon, pas une panne"""
        if collection != 'permissions':
            self._fail(operation, collection, error)
        self.session.rollback()
        logger.warning(f"Duplicate permission rejected during {operation}: {error.orig}")
        raise DuplicatePermissionError() from error

    # ===================== LECTURE =====================

    def get(self, collection: str, record_id: str):
        """Return the record with this id, or None"""
        model = self._model(collection)
        if not record_id:
            return None
        try:
            return self.session.get(model, record_id)
        except SQLAlchemyError as e:
            self._fail('get', collection, e)

    def get_or_404(self, collection: str, record_id: str):
        record = self.get(collection, record_id)
        if record is None:
            raise EntityNotFoundError(collection, record_id)
        return record

    def get_one(self, collection: str, filters: Dict[str, Any]):
        """Return the first record matching every filter, or None"""
        model = self._model(collection)
        try:
            return self.session.query(model).filter_by(**filters).first()
        except SQLAlchemyError as e:
            self._fail('get_one', collection, e)

    def list_all(self, collection: str, filters: Optional[Dict[str, Any]] = None,
                 sort: Optional[str] = 'name') -> List[Any]:
        model = self._model(collection)
        try:
            query = self.session.query(model)
            if filters:
                query = query.filter_by(**filters)
            if sort and hasattr(model, sort):
                query = query.order_by(getattr(model, sort))
            else:
                query = query.order_by(model.created)
            return query.all()
        except SQLAlchemyError as e:
            self._fail('list_all', collection, e)

    def count(self, collection: str) -> int:
        model = self._model(collection)
        try:
            return self.session.query(model).count()
        except SQLAlchemyError as e:
            self._fail('count', collection, e)

    # ===================== ÉCRITURE =====================

    def _apply(self, collection: str, record, data: Dict[str, Any]):
        for field in WRITABLE_FIELDS[collection]:
            if field in data:
                setattr(record, field, data[field])
        return record

    def create(self, collection: str, data: Dict[str, Any]):
        model = self._model(collection)
        try:
            record = self._apply(collection, model(), data)
            self.session.add(record)
            self.session.commit()
            return record
        except IntegrityError as e:
            self._conflict('create', collection, e)
        except SQLAlchemyError as e:
            self._fail('create', collection, e)

    def create_many(self, collection: str, items: List[Dict[str, Any]]) -> List[Any]:
        """Create several records in a single transaction"""
        model = self._model(collection)
        try:
            records = [self._apply(collection, model(), item) for item in items]
            self.session.add_all(records)
            self.session.commit()
            return records
        except SQLAlchemyError as e:
            self._fail('create_many', collection, e)

    def update(self, collection: str, record_id: str, data: Dict[str, Any]):
        record = self.get_or_404(collection, record_id)
        try:
            self._apply(collection, record, data)
            self.session.commit()
            return record
        except IntegrityError as e:
            self._conflict('update', collection, e)
        except SQLAlchemyError as e:
            self._fail('update', collection, e)

    def delete(self, collection: str, record_id: str) -> Dict[str, int]:
        """
        Supprime un enregistrement et ses dépendants dans une seule transaction.

        Returns:
            Number of deleted records per collection
        """
        record = self.get_or_404(collection, record_id)
        deleted = {'resources': 0, 'actions': 0, 'roles': 0, 'conditionCodes': 0, 'permissions': 0}
        try:
            permissions = self.session.query(Permission)

            if collection == 'resources':
                action_ids = [a.id for a in self.session.query(Action).filter_by(resource_id=record_id)]
                criteria = [Permission.resource_id == record_id]
                if action_ids:
                    criteria.append(Permission.action_id.in_(action_ids))
                deleted['permissions'] = permissions.filter(or_(*criteria)).delete(synchronize_session=False)
                deleted['actions'] = self.session.query(Action).filter_by(
                    resource_id=record_id).delete(synchronize_session=False)
            elif collection == 'actions':
                deleted['permissions'] = permissions.filter_by(
                    action_id=record_id).delete(synchronize_session=False)
            elif collection == 'roles':
                deleted['permissions'] = permissions.filter_by(
                    role_id=record_id).delete(synchronize_session=False)
            elif collection == 'conditionCodes':
                # Les permissions restent, sans condition exploitable
                permissions.filter_by(condition_code_id=record_id).update(
                    {'condition_code_id': None}, synchronize_session=False)

            self.session.delete(record)
            deleted[collection] += 1
            self.session.commit()
        except SQLAlchemyError as e:
            self._fail('delete', collection, e)

        logger.info(f"Deleted {collection}/{record_id} with dependents: {deleted}")
        return deleted
