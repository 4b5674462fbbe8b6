"""Test application package: delegated edit access to architecture artifacts."""

from .aggregates import (
    CannotGrantToSelfError,
    EditGrant,
    EditGrantNotFoundError,
    GrantAlreadyExpiredError,
    GrantAlreadyRevokedError,
)
from .commands import CreateEditGrant, ExpireEditGrant, RevokeEditGrant
from .events import (
    ApplicationComponentDeleted,
    BusinessDomainDeleted,
    CapabilityDeleted,
    EditGrantActivated,
    EditGrantExpired,
    EditGrantRevoked,
    ValueStreamDeleted,
    ViewDeleted,
)
from .middleware.execution_tracker import ExecutionTracker
from .projectors import ArtifactDeletionProjector, EditGrantProjector
from .read_models import EditGrantDTO, InMemoryEditGrantReadModel
from .wiring import register_access_delegation

__all__ = [
    "EditGrant",
    "EditGrantNotFoundError",
    "CannotGrantToSelfError",
    "GrantAlreadyRevokedError",
    "GrantAlreadyExpiredError",
    "CreateEditGrant",
    "RevokeEditGrant",
    "ExpireEditGrant",
    "EditGrantActivated",
    "EditGrantRevoked",
    "EditGrantExpired",
    "CapabilityDeleted",
    "ApplicationComponentDeleted",
    "ViewDeleted",
    "BusinessDomainDeleted",
    "ValueStreamDeleted",
    "ExecutionTracker",
    "EditGrantProjector",
    "ArtifactDeletionProjector",
    "EditGrantDTO",
    "InMemoryEditGrantReadModel",
    "register_access_delegation",
]
