"""
Core Application - Infrastructure & Base Classes

Generic, reusable base classes shared by the domain apps (orders,
inventory, settlements, audit, refunds). No business logic lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - MetadataMixin: Flexible JSON metadata storage

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError, StateError, AuthenticationRequiredError,
      PermissionDeniedError, NotFoundError, ConflictError,
      ExternalServiceError

Helpers (import from core.helpers):
    - hash_string: String hashing
    - get_client_ip / get_user_agent: Request metadata extraction

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .services import BaseService, ServiceResult

from .exceptions import (
    AuthenticationRequiredError,
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)

from .helpers import get_client_ip, get_user_agent, hash_string

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "StateError",
    "AuthenticationRequiredError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "ExternalServiceError",
    # Helpers
    "hash_string",
    "get_client_ip",
    "get_user_agent",
]
