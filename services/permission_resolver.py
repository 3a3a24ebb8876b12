# services/permission_resolver.py

import logging
from collections.abc import Mapping
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from services.condition_evaluator import (
    DEFAULT_MAX_LENGTH,
    DEFAULT_MAX_STEPS,
    evaluate_condition,
)
from services.exceptions import EntityNotFoundError, InvalidRequestError

logger = logging.getLogger(__name__)

# Étapes de résolution
STATE_NOT_FOUND = "NOT_FOUND"
STATE_NO_CONDITION = "NO_CONDITION"
STATE_CONDITION_APPLICABLE = "CONDITION_APPLICABLE"


@dataclass
class PermissionDecision:
    """
    Result of resolving one (role, resource, action) request.

    ``allowed`` is the base grant stored on the permission record,
    ``condition_applied`` tells whether a condition was actually evaluated
    and ``final_result`` is the access decision.
    """
    role_id: str
    resource_id: str
    action_id: str
    role: str
    resource: str
    action: str
    state: str
    record_found: bool = False
    permission_id: Optional[str] = None
    allowed: bool = False
    has_condition: bool = False
    condition_applied: bool = False
    condition_code_id: Optional[str] = None
    condition_code: Optional[str] = None
    condition_result: Optional[bool] = None
    final_result: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PermissionResolver:
    """
    Décide si un rôle peut effectuer une action sur une ressource.

    The record gateway is injected so the resolver never touches a global
    session; it only reads. Storage errors raised by the gateway propagate
    unchanged and are never turned into a deny.
    """

    def __init__(self, gateway, max_steps: int = DEFAULT_MAX_STEPS,
                 max_length: int = DEFAULT_MAX_LENGTH):
        self.gateway = gateway
        self.max_steps = max_steps
        self.max_length = max_length

    def _require(self, collection: str, record_id: str):
        record = self.gateway.get(collection, record_id)
        if record is None:
            raise EntityNotFoundError(collection, record_id)
        return record

    def resolve(self, role_id: str, resource_id: str, action_id: str,
                attributes: Mapping) -> PermissionDecision:
        """
        Resolve the access decision for a role/resource/action triple.

        Args:
            role_id: Role record id
            resource_id: Resource record id
            action_id: Action record id, scoped to the resource
            attributes: Request attribute bag passed to the condition

        Returns:
            PermissionDecision

        Raises:
            InvalidRequestError: Missing selector or non-object attributes
            EntityNotFoundError: Role, resource or action does not exist
            GatewayError: The record store failed
        """
        if not role_id or not resource_id or not action_id:
            raise InvalidRequestError("Please select a role, resource, and action")
        if not isinstance(attributes, Mapping):
            raise InvalidRequestError("Attributes must be a JSON object", 'INVALID_ATTRIBUTES')

        role = self._require('roles', role_id)
        resource = self._require('resources', resource_id)
        action = self._require('actions', action_id)
        if action.resource_id != resource.id:
            raise InvalidRequestError(
                f"Action {action.name} does not belong to resource {resource.name}",
                'ACTION_RESOURCE_MISMATCH')

        decision = PermissionDecision(
            role_id=role_id,
            resource_id=resource_id,
            action_id=action_id,
            role=role.name,
            resource=resource.name,
            action=action.name,
            state=STATE_NOT_FOUND,
        )

        permission = self.gateway.get_one('permissions', {
            'role_id': role_id,
            'resource_id': resource_id,
            'action_id': action_id,
        })
        if permission is None:
            logger.debug(f"No permission record for {role.name}/{resource.name}/{action.name}")
            return decision

        decision.record_found = True
        decision.permission_id = permission.id
        decision.allowed = bool(permission.has_permission)
        decision.has_condition = bool(permission.has_condition)
        decision.final_result = decision.allowed
        decision.state = STATE_NO_CONDITION

        condition_code = None
        if permission.has_condition and permission.condition_code_id:
            condition_code = self.gateway.get('conditionCodes', permission.condition_code_id)
            if condition_code is None:
                logger.warning(
                    f"Permission {permission.id} references missing condition code "
                    f"{permission.condition_code_id}, condition ignored")
            elif not (condition_code.expression or '').strip():
                logger.debug(f"Condition code {condition_code.id} is blank, condition ignored")
                condition_code = None

        if condition_code is not None:
            decision.state = STATE_CONDITION_APPLICABLE
            decision.condition_applied = True
            decision.condition_code_id = condition_code.id
            decision.condition_code = condition_code.name
            decision.condition_result = evaluate_condition(
                condition_code.expression, attributes,
                max_steps=self.max_steps, max_length=self.max_length)
            decision.final_result = decision.allowed and decision.condition_result

        return decision
