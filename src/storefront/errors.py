# src/storefront/errors.py
"""Типизированные ошибки предметной области. Каждая знает свой HTTP-статус."""


class AppError(Exception):
    status_code = 500
    error_type = 'internal_server_error'

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = 400
    error_type = 'validation_error'


class AuthenticationError(AppError):
    status_code = 401
    error_type = 'authentication_error'


class AuthorizationError(AppError):
    status_code = 403
    error_type = 'authorization_error'


class NotFoundError(AppError):
    status_code = 404
    error_type = 'not_found_error'


class ConflictError(AppError):
    status_code = 409
    error_type = 'conflict_error'


class BusinessLogicError(AppError):
    status_code = 422
    error_type = 'business_logic_error'


class DatabaseError(AppError):
    status_code = 500
    error_type = 'database_error'
