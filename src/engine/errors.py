# src/engine/errors.py


class ObfuscationError(Exception):
    status_code = 500


class JobValidationError(ObfuscationError):
    status_code = 400


class InvalidTokenError(ObfuscationError):
    status_code = 404

    def __init__(self, message: str = "Invalid or expired download token"):
        super().__init__(message)


class JobNotFoundError(ObfuscationError):
    status_code = 404


class UnsupportedOperationError(ObfuscationError):
    status_code = 501
