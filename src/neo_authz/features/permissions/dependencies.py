"""FastAPI authorization dependencies."""

import inspect
import logging
from typing import Annotated, Any, Awaitable, Callable, Optional, Sequence

from fastapi import Depends, HTTPException, Request, status

from ...core.exceptions import CacheError, FeatureHandlerUnavailableError, StoreError
from .entities import Subject
from .services import Authorizer

logger = logging.getLogger(__name__)

ContextProvider = Callable[[Request], Any]


class AuthorizationDependencyError(HTTPException):
    """HTTP error raised by authorization dependencies."""

    def __init__(self, detail: str, status_code: int = status.HTTP_403_FORBIDDEN):
        super().__init__(status_code=status_code, detail=detail)


class AuthorizationDependencies:
    """FastAPI dependencies factory over an Authorizer.

    ``get_subject`` is a FastAPI dependency resolving the current subject.
    ``get_context`` optionally maps the request to a context argument, for
    example a tenant taken from a path parameter.
    """

    def __init__(
        self,
        authorizer: Authorizer,
        get_subject: Callable[..., Awaitable[Subject]],
        get_context: Optional[ContextProvider] = None,
    ):
        self.authorizer = authorizer
        self.get_subject = get_subject
        self.get_context = get_context

    async def _context(self, request: Request) -> Any:
        if self.get_context is None:
            return None
        context = self.get_context(request)
        if inspect.isawaitable(context):
            context = await context
        return context

    async def _decide(self, check: Callable[[], Awaitable[bool]], subject: Subject, detail: str) -> Subject:
        try:
            allowed = await check()
        except (StoreError, CacheError, FeatureHandlerUnavailableError) as e:
            logger.error(f"Authorization check failed for {subject.subject_type}#{subject.subject_id}: {e}")
            raise AuthorizationDependencyError(
                "Authorization service unavailable",
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        if not allowed:
            logger.warning(f"{subject.subject_type}#{subject.subject_id} denied: {detail}")
            raise AuthorizationDependencyError(detail)
        return subject

    def require_permission(self, permission: str):
        """Require specific permission."""
        get_subject = self.get_subject

        async def dependency(
            request: Request,
            subject: Annotated[Subject, Depends(get_subject)],
        ) -> Subject:
            context = await self._context(request)
            return await self._decide(
                lambda: self.authorizer.has_permission(subject, permission, context),
                subject,
                f"Permission required: {permission}",
            )

        return dependency

    def require_any_permission(self, permissions: Sequence[str]):
        """Require any of the specified permissions."""
        get_subject = self.get_subject
        permissions = list(permissions)

        async def dependency(
            request: Request,
            subject: Annotated[Subject, Depends(get_subject)],
        ) -> Subject:
            context = await self._context(request)
            return await self._decide(
                lambda: self.authorizer.has_any_permission(subject, permissions, context),
                subject,
                f"One of these permissions required: {', '.join(permissions)}",
            )

        return dependency

    def require_all_permissions(self, permissions: Sequence[str]):
        """Require all of the specified permissions."""
        get_subject = self.get_subject
        permissions = list(permissions)

        async def dependency(
            request: Request,
            subject: Annotated[Subject, Depends(get_subject)],
        ) -> Subject:
            context = await self._context(request)
            return await self._decide(
                lambda: self.authorizer.has_all_permissions(subject, permissions, context),
                subject,
                f"All permissions required: {', '.join(permissions)}",
            )

        return dependency

    def require_role(self, role: str):
        """Require specific role."""
        get_subject = self.get_subject

        async def dependency(
            request: Request,
            subject: Annotated[Subject, Depends(get_subject)],
        ) -> Subject:
            context = await self._context(request)
            return await self._decide(
                lambda: self.authorizer.has_role(subject, role, context),
                subject,
                f"Role required: {role}",
            )

        return dependency

    def require_any_role(self, roles: Sequence[str]):
        """Require any of the specified roles."""
        get_subject = self.get_subject
        roles = list(roles)

        async def dependency(
            request: Request,
            subject: Annotated[Subject, Depends(get_subject)],
        ) -> Subject:
            context = await self._context(request)
            return await self._decide(
                lambda: self.authorizer.has_any_role(subject, roles, context),
                subject,
                f"One of these roles required: {', '.join(roles)}",
            )

        return dependency
