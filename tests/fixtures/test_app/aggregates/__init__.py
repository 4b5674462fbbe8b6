from .edit_grant import (
    DEFAULT_EDIT_GRANT_TTL,
    CannotGrantToSelfError,
    EditGrant,
    EditGrantNotFoundError,
    GrantAlreadyExpiredError,
    GrantAlreadyRevokedError,
)

__all__ = [
    "DEFAULT_EDIT_GRANT_TTL",
    "CannotGrantToSelfError",
    "EditGrant",
    "EditGrantNotFoundError",
    "GrantAlreadyExpiredError",
    "GrantAlreadyRevokedError",
]
