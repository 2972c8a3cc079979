class AccessControlError(Exception):
    """Base exception for authorization failures."""


class InvalidPrincipalError(AccessControlError):
    """Raised when a principal is missing its user id or carries an unusable role."""


class InvalidRoleError(InvalidPrincipalError):
    """Raised when a role is outside the fixed role enumeration."""


class ConfigurationError(AccessControlError):
    """Raised when the permission catalog or role table is malformed."""


class AccessDeniedError(AccessControlError):
    """Raised when a principal lacks the permission an action requires.

    The message never names the missing permission.
    """

    def __init__(self) -> None:
        super().__init__("Forbidden")
