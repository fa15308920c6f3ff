"""
logic/errors.py
Errors the registration flow surfaces to API callers.

Each carries a stable `code` (for clients) and the HTTP status the API
layer maps it to. Persistence and e-mail problems are NOT here: those
never reach the caller (see RegistrationStore.save / NotificationResult).
"""


class RegistrationError(Exception):
    code = "REGISTRATION_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RegistrationError):
    code = "VALIDATION_ERROR"
    status_code = 400


class DuplicateEmailError(RegistrationError):
    code = "DUPLICATE_EMAIL"
    status_code = 400


class NotFoundError(RegistrationError):
    code = "NOT_FOUND"
    status_code = 404


class UnauthorizedError(RegistrationError):
    code = "UNAUTHORIZED"
    status_code = 401
