"""Custom exceptions for the building administration application."""


class AppError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Ocurrió un error interno", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(AppError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class ValidationError(BusinessLogicError):
    """Raised when caller input is invalid (amounts, missing references, formats)."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(AppError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Recurso no encontrado", payload=None):
        super().__init__(message, 404, payload)


class StoreError(AppError):
    """Raised when the persistence layer fails (connectivity, constraints)."""
    def __init__(self, message="Error de base de datos", payload=None):
        super().__init__(message, 500, payload)
