class PermissionServiceError(Exception):
    """Base exception for ABAC service errors surfaced to API callers"""
    def __init__(self, message: str, status_code: int = 500, code: str = 'PERMISSION_SERVICE_ERROR'):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class InvalidRequestError(PermissionServiceError):
    """Malformed input, rejected before any evaluation"""
    def __init__(self, message: str, code: str = 'INVALID_REQUEST'):
        super().__init__(message, 400, code)


class EntityNotFoundError(PermissionServiceError):
    """A referenced role, resource, action or record does not exist"""
    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record not found: {record_id}", 404, 'NOT_FOUND')


class DuplicatePermissionError(PermissionServiceError):
    def __init__(self, message: str = "This permission already exists. Please edit the existing one."):
        super().__init__(message, 409, 'DUPLICATE_PERMISSION')


class GatewayError(PermissionServiceError):
    """The record store could not be reached or failed mid-operation"""
    def __init__(self, message: str):
        super().__init__(message, 503, 'STORAGE_ERROR')
