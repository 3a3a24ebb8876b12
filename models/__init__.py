from .user import User
from .resource import Resource
from .action import Action, STANDARD_ACTIONS
from .role import Role
from .condition_code import ConditionCode
from .permission import Permission

__all__ = [
    "User",
    "Resource",
    "Action",
    "STANDARD_ACTIONS",
    "Role",
    "ConditionCode",
    "Permission",
]
