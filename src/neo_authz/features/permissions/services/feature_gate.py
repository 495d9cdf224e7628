"""Feature gate.

When feature integration is enabled (features and contexts both on), a check
scoped to a feature-typed context is vetoed unless the bound handler grants
access. Permission and role definitions may also name a feature flag that
must be enabled for the subject.
"""

import logging
from typing import Any, Optional

from ....config.constants import OnMissingHandler
from ....config.settings import AuthzSettings
from ....core.exceptions import FeatureHandlerUnavailableError
from ..entities import ContextRef, FeatureAccessHandler, FeatureFlags, Subject
from .context_resolver import ContextResolver

logger = logging.getLogger(__name__)


class FeatureGate:
    """Decision table over integration state, context type, bypass and handler."""

    def __init__(
        self,
        settings: AuthzSettings,
        context_resolver: ContextResolver,
        handler: Optional[FeatureAccessHandler] = None,
        flags: Optional[FeatureFlags] = None,
    ):
        self.settings = settings
        self.context_resolver = context_resolver
        self.handler = handler
        self.flags = flags

    @property
    def integration_enabled(self) -> bool:
        return self.settings.feature_integration_enabled

    def bind(self, handler: Optional[FeatureAccessHandler]) -> None:
        self.handler = handler

    def is_feature_context(self, context: ContextRef) -> bool:
        return not context.is_global and context.type in self.settings.features.context_types

    def _on_missing_handler(self, feature: Optional[str] = None) -> bool:
        policy = self.settings.features.on_missing_handler
        if policy is OnMissingHandler.THROW:
            raise FeatureHandlerUnavailableError(feature)
        logger.debug(f"No feature handler bound, applying '{policy.value}' policy")
        return policy is OnMissingHandler.ALLOW

    async def check_access(self, subject: Subject, context: ContextRef, bypass: bool = False) -> bool:
        """Run before any grant path; False short-circuits the check."""
        if not self.integration_enabled:
            return True
        if not self.is_feature_context(context):
            return True
        if bypass:
            return True
        if self.handler is None:
            return self._on_missing_handler(str(context))
        allowed = await self.handler.can_access(context, subject)
        if not allowed:
            logger.debug(f"Feature context {context} blocked access for {subject.subject_type}#{subject.subject_id}")
        return allowed

    async def check_binding(self, subject: Subject, flag: Optional[str]) -> bool:
        """Feature flag bound to a permission or role definition."""
        if flag is None or not self.integration_enabled:
            return True
        if self.flags is None:
            return self._on_missing_handler(flag)
        return await self.flags.is_enabled(flag, subject)

    async def is_feature_active(self, feature: Any) -> bool:
        context = self.context_resolver.resolve(feature)
        if not self.integration_enabled or not self.is_feature_context(context):
            return True
        if self.handler is None:
            return self._on_missing_handler(str(context))
        return await self.handler.is_active(context)

    async def has_feature_access(self, feature: Any, subject: Subject) -> bool:
        context = self.context_resolver.resolve(feature)
        if not self.integration_enabled or not self.is_feature_context(context):
            return True
        if self.handler is None:
            return self._on_missing_handler(str(context))
        return await self.handler.has_access(context, subject)

    async def can_access_feature(self, feature: Any, subject: Subject) -> bool:
        return await self.check_access(subject, self.context_resolver.resolve(feature))
