"""
Application error taxonomy.

Services raise these; the handlers registered in main.py turn them into
JSON bodies of the form {"message": ...}. Validation failures additionally
carry a list of field-level errors.
"""

from typing import Dict, List, Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors that map onto a well-formed JSON response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong!"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        return {"message": self.message}


class ValidationFailedError(AppError):
    """Request input failed validation. Lists every violated field."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailedError":
        return cls([{"field": field, "message": message}], message=message)

    def to_dict(self) -> Dict:
        return {"message": self.message, "errors": self.errors}


class InvalidCredentialsError(AppError):
    # Deliberately the same text for unknown email and wrong password
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid credentials"


class ConflictError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token is not valid"


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not enough permissions"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


def errors_from_pydantic(exc_errors: List[Dict]) -> List[Dict[str, str]]:
    """
    Flatten pydantic/FastAPI error dicts into [{"field", "message"}].

    The leading "body"/"query"/"path" location segment is dropped so the
    field reads the way the client sent it (e.g. "location.lat").
    """
    flattened = []
    for err in exc_errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header", "form"):
            loc = loc[1:]
        flattened.append({
            "field": ".".join(loc) or "__root__",
            "message": err.get("msg", "Invalid value"),
        })
    return flattened
