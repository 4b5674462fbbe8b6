"""Registers the edit grant context on an application builder."""

from chronicle.application import Application, ApplicationBuilder, ErrorCategory

from .aggregates import (
    CannotGrantToSelfError,
    EditGrant,
    EditGrantNotFoundError,
    GrantAlreadyExpiredError,
    GrantAlreadyRevokedError,
)
from .commands import CreateEditGrantHandler, ExpireEditGrantHandler, RevokeEditGrantHandler
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
from .projectors import ArtifactDeletionProjector, EditGrantProjector
from .read_models import InMemoryEditGrantReadModel
from .valueobjects import ArtifactType

DELETION_EVENTS = {
    CapabilityDeleted: ArtifactType.CAPABILITY,
    ApplicationComponentDeleted: ArtifactType.COMPONENT,
    ViewDeleted: ArtifactType.VIEW,
    BusinessDomainDeleted: ArtifactType.DOMAIN,
    ValueStreamDeleted: ArtifactType.VALUE_STREAM,
}


def register_access_delegation(
    builder: ApplicationBuilder, read_model: InMemoryEditGrantReadModel
) -> ApplicationBuilder:
    builder.register_events(EditGrantActivated, EditGrantRevoked, EditGrantExpired)
    builder.register_events(*DELETION_EVENTS)

    grants = builder.repository_for(EditGrant, not_found=EditGrantNotFoundError)
    builder.register_command_handler(CreateEditGrantHandler(grants))
    builder.register_command_handler(RevokeEditGrantHandler(grants))
    builder.register_command_handler(ExpireEditGrantHandler(grants))

    builder.register_projector(EditGrantProjector(read_model))
    for event_type, artifact_type in DELETION_EVENTS.items():
        builder.subscribe(event_type, _deletion_projector(read_model, artifact_type))

    builder.register_error(CannotGrantToSelfError, ErrorCategory.VALIDATION, 400)
    builder.register_error(GrantAlreadyRevokedError, ErrorCategory.CONFLICT, 409)
    builder.register_error(GrantAlreadyExpiredError, ErrorCategory.CONFLICT, 409)
    return builder


def _deletion_projector(read_model: InMemoryEditGrantReadModel, artifact_type: ArtifactType):
    def build(app: Application) -> ArtifactDeletionProjector:
        return ArtifactDeletionProjector(read_model, app, artifact_type)

    return build
