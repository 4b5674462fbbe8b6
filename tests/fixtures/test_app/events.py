"""Events of the edit grant context and the deletion events it listens to."""

from datetime import datetime

from chronicle.domain import EventPayload


class EditGrantActivated(EventPayload):
    id: str
    artifact_type: str
    artifact_id: str
    grantor_id: str
    grantor_email: str
    grantee_email: str
    scope: str
    reason: str
    created_at: datetime
    expires_at: datetime


class EditGrantRevoked(EventPayload):
    id: str
    revoked_by: str
    revoked_at: datetime


class EditGrantExpired(EventPayload):
    id: str
    expired_at: datetime


# Published by the contexts that own the artifacts


class CapabilityDeleted(EventPayload):
    id: str


class ApplicationComponentDeleted(EventPayload):
    id: str


class ViewDeleted(EventPayload):
    id: str


class BusinessDomainDeleted(EventPayload):
    id: str


class ValueStreamDeleted(EventPayload):
    id: str
