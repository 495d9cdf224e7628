"""Fluent AND/OR chains over permission, role and capability checks.

Example::

    allowed = await (
        authorizer.for_subject(user)
        .in_context(team)
        .has_permission("articles.edit")
        .or_has_role("admin")
        .check()
    )

Conditions fold left to right: the first seeds the result and each later one
combines through its own operator. An empty chain is False.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Sequence, Union

from ....config.constants import CheckKind, ConditionOperator
from ..entities import Subject

if TYPE_CHECKING:
    from .authorization_service import Authorizer


@dataclass(frozen=True)
class Condition:
    operator: ConditionOperator
    kind: CheckKind
    value: Union[str, Sequence[str]]


class AuthorizationBuilder:
    """Mutable condition list bound to one subject and one context."""

    def __init__(self, authorizer: "Authorizer", subject: Subject):
        self.authorizer = authorizer
        self.subject = subject
        self.context: Any = None
        self.conditions: List[Condition] = []

    def in_context(self, context: Any) -> "AuthorizationBuilder":
        self.context = context
        return self

    def _add(self, operator: ConditionOperator, kind: CheckKind, value) -> "AuthorizationBuilder":
        if kind in (CheckKind.ANY_PERMISSION, CheckKind.ANY_ROLE):
            value = tuple(value)
        self.conditions.append(Condition(operator, kind, value))
        return self

    # Permissions

    def has_permission(self, permission: str) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.AND, CheckKind.PERMISSION, permission)

    can = has_permission
    and_has_permission = has_permission

    def or_has_permission(self, permission: str) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.OR, CheckKind.PERMISSION, permission)

    def has_any_permission(self, permissions: Sequence[str]) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.AND, CheckKind.ANY_PERMISSION, permissions)

    and_has_any_permission = has_any_permission

    def or_has_any_permission(self, permissions: Sequence[str]) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.OR, CheckKind.ANY_PERMISSION, permissions)

    # Roles

    def has_role(self, role: str) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.AND, CheckKind.ROLE, role)

    is_ = has_role
    and_has_role = has_role

    def or_has_role(self, role: str) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.OR, CheckKind.ROLE, role)

    def has_any_role(self, roles: Sequence[str]) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.AND, CheckKind.ANY_ROLE, roles)

    and_has_any_role = has_any_role

    def or_has_any_role(self, roles: Sequence[str]) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.OR, CheckKind.ANY_ROLE, roles)

    # Capabilities

    def has_capability(self, capability: str) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.AND, CheckKind.CAPABILITY, capability)

    and_has_capability = has_capability

    def or_has_capability(self, capability: str) -> "AuthorizationBuilder":
        return self._add(ConditionOperator.OR, CheckKind.CAPABILITY, capability)

    # Evaluation

    async def _evaluate(self, condition: Condition) -> bool:
        authorizer, subject, context = self.authorizer, self.subject, self.context
        if condition.kind is CheckKind.PERMISSION:
            return await authorizer.has_permission(subject, condition.value, context)
        if condition.kind is CheckKind.ANY_PERMISSION:
            return await authorizer.has_any_permission(subject, condition.value, context)
        if condition.kind is CheckKind.ROLE:
            return await authorizer.has_role(subject, condition.value, context)
        if condition.kind is CheckKind.ANY_ROLE:
            return await authorizer.has_any_role(subject, condition.value, context)
        return await authorizer.has_capability(subject, condition.value, context)

    async def check(self) -> bool:
        if not self.conditions:
            return False
        result = await self._evaluate(self.conditions[0])
        for condition in self.conditions[1:]:
            current = await self._evaluate(condition)
            if condition.operator is ConditionOperator.AND:
                result = result and current
            else:
                result = result or current
        return result

    allowed = check
    evaluate = check

    async def denied(self) -> bool:
        return not await self.check()
