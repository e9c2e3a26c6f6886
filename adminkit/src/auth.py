"""
Authorization context and capability checks.

Controllers receive an AuthorizationContext at construction and ask it
whether the current session may perform an operation on an entity. The
context never looks anything up globally: the session token and the
capability checker are passed in explicitly.

Grant strings used by PermissionSet have the form
"service:entity:operation", where any part may be "*".
"""

import inspect
import logging
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, Set, Tuple, Union

from adminkit.src.entities import LANDING_ROUTE
from adminkit.src.exceptions import AuthorizationError


logger = logging.getLogger("adminkit.auth")


class AccessService(str, Enum):
    """Service scope of a capability check."""

    PROJECT = "project"
    PLATFORM = "platform"


class AccessOperation(str, Enum):
    """Operation kind of a capability check."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


CapabilityChecker = Callable[
    [AccessService, str, AccessOperation],
    Union[bool, Awaitable[bool]],
]


# ============================================================================
# PermissionSet
# ============================================================================


class PermissionSet:
    """
    Capability checker backed by a fixed set of grants.

    Example:
        >>> perms = PermissionSet(["project:billings:*"])
        >>> perms(AccessService.PROJECT, "billings", AccessOperation.CREATE)
        True
    """

    def __init__(self, grants: Iterable[str] = ()):
        self._grants: Set[Tuple[str, str, str]] = set()
        for grant in grants:
            self.add(grant)

    @staticmethod
    def parse(grant: str) -> Tuple[str, str, str]:
        """
        Parse a grant string.

        Raises:
            ValueError: If the grant does not have three parts
        """
        parts = [part.strip().lower() for part in grant.split(":")]
        if len(parts) != 3 or not all(parts):
            raise ValueError(
                f"Invalid grant '{grant}', expected 'service:entity:operation'"
            )
        return parts[0], parts[1], parts[2]

    def add(self, grant: str) -> None:
        self._grants.add(self.parse(grant))

    def discard(self, grant: str) -> None:
        self._grants.discard(self.parse(grant))

    @property
    def grants(self):
        return sorted(":".join(grant) for grant in self._grants)

    def __call__(self, service: AccessService, entity: str, operation: AccessOperation) -> bool:
        wanted = (AccessService(service).value, entity.lower(), AccessOperation(operation).value)
        for grant in self._grants:
            if all(g == "*" or g == w for g, w in zip(grant, wanted)):
                return True
        return False


# ============================================================================
# AuthorizationContext
# ============================================================================


class AuthorizationContext:
    """
    Session plus capability checker handed to controllers.

    Attributes:
        session_token: Token of the signed-in session, None when signed out
        redirect_to: Route to send the user to when a check fails
    """

    def __init__(
        self,
        session_token: Optional[str],
        checker: CapabilityChecker,
        redirect_to: str = LANDING_ROUTE,
    ):
        self.session_token = session_token
        self.redirect_to = redirect_to
        self._checker = checker

    @property
    def is_authenticated(self) -> bool:
        return bool(self.session_token)

    async def authorize(
        self,
        service: AccessService,
        entity: str,
        operation: AccessOperation,
    ) -> bool:
        """
        Run the capability check.

        An unauthenticated session is always denied without consulting
        the checker. Checkers may be synchronous or return an awaitable.
        """
        if not self.is_authenticated:
            logger.info(f"Denied {operation.value} on {entity}: no session")
            return False

        result = self._checker(service, entity, operation)
        if inspect.isawaitable(result):
            result = await result

        if not result:
            logger.info(f"Denied {operation.value} on {service.value}:{entity}")
        return bool(result)

    async def require(
        self,
        service: AccessService,
        entity: str,
        operation: AccessOperation,
        navigator=None,
    ) -> None:
        """
        Run the capability check as a hard gate.

        On denial, pushes the redirect route to the navigator (if given)
        and raises.

        Raises:
            AuthorizationError: If the check fails
        """
        if await self.authorize(service, entity, operation):
            return
        if navigator is not None:
            navigator.push(self.redirect_to)
        raise AuthorizationError(
            service.value, entity, operation.value, redirect_to=self.redirect_to
        )
