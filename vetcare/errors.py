"""
Application error taxonomy.

Services raise these; the handler registered in create_app() turns them
into the standard JSON error envelope with the matching HTTP status.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    status_code = 500
    error_code = 'INTERNAL_ERROR'

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'success': False,
            'error': self.message,
            'error_code': self.error_code,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = 'VALIDATION_ERROR'


class UnauthorizedError(AppError):
    status_code = 401
    error_code = 'UNAUTHORIZED'

    def __init__(self, message: str = 'Authentication required'):
        super().__init__(message)


class ForbiddenError(AppError):
    status_code = 403
    error_code = 'FORBIDDEN'

    def __init__(self, message: str = 'Access forbidden'):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    error_code = 'NOT_FOUND'

    def __init__(self, resource: str, entity_id: Optional[Any] = None):
        if entity_id is not None:
            message = f'{resource} with id {entity_id} not found'
        else:
            message = f'{resource} not found'
        super().__init__(message, {'resource': resource, 'id': entity_id})


class ConflictError(AppError):
    status_code = 409
    error_code = 'CONFLICT'


class DatabaseError(AppError):
    status_code = 500
    error_code = 'DATABASE_ERROR'
