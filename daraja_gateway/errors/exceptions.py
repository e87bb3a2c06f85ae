class DarajaError(Exception):
    http_status = 500
    code = "REQUEST_FAILED"
    error = "Gateway error"

    def __init__(self, message, status_code=None, response=None, request_id=None, cause=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.response = response
        self.request_id = request_id
        if cause is not None:
            self.__cause__ = cause

    @property
    def is_transient(self):
        """True when the outcome at the gateway is unknown rather than failed."""
        return self.code in TRANSIENT_CODES

    def to_dict(self):
        return {
            "name": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "http_status": self.http_status,
            "request_id": self.request_id,
        }

    def __repr__(self):
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class AuthFailed(DarajaError):
    http_status = 401
    code = "AUTH_FAILED"
    error = "Authentication failed"


class InvalidCredentials(DarajaError):
    http_status = 400
    code = "INVALID_CREDENTIALS"
    error = "Invalid credentials"


class ValidationError(DarajaError):
    http_status = 400
    code = "VALIDATION_ERROR"
    error = "Validation error"


class EncryptionFailed(DarajaError):
    http_status = 500
    code = "ENCRYPTION_FAILED"
    error = "Encryption failed"


class InvalidPhone(ValidationError):
    code = "INVALID_PHONE"
    error = "Invalid phone number"


class NetworkError(DarajaError):
    http_status = 502
    code = "NETWORK_ERROR"
    error = "Network error"


class RequestTimeout(DarajaError):
    http_status = 504
    code = "TIMEOUT"
    error = "Request timed out"


class HttpError(DarajaError):
    http_status = 502
    code = "HTTP_ERROR"
    error = "HTTP error"


class ApiError(DarajaError):
    http_status = 502
    code = "API_ERROR"
    error = "Gateway rejected the request"


class RequestFailed(DarajaError):
    http_status = 503
    code = "REQUEST_FAILED"
    error = "Request failed"


class InvalidResponse(DarajaError):
    http_status = 502
    code = "INVALID_RESPONSE"
    error = "Invalid gateway response"


TRANSIENT_CODES = frozenset({
    NetworkError.code,
    RequestTimeout.code,
    RequestFailed.code,
})
