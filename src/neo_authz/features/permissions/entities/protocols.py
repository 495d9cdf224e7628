"""Protocol interfaces for the permissions feature.

The engine talks to persistence, feature flags and audit sinks only through
these contracts, so hosts can plug in their own implementations.
"""

from abc import abstractmethod
from typing import Dict, List, Optional, Protocol, Sequence, Set, runtime_checkable

from ....config.constants import DefinitionKind
from .context import ContextFilter, ContextRef
from .definition import Definition
from .grant import EntityRef, Relation
from .subject import Subject


@runtime_checkable
class RelationStore(Protocol):
    """Persisted grant edges keyed by relation, owner, grantee and context.

    Mutations take the exact context of the edges they write. Reads take a
    ``ContextFilter`` built by ``ContextResolver``.
    """

    @abstractmethod
    async def attach(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Sequence[int],
        context: ContextRef,
    ) -> List[int]:
        """Insert missing edges, return the grantee ids actually inserted."""
        ...

    @abstractmethod
    async def detach(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Optional[Sequence[int]],
        context: ContextRef,
    ) -> List[int]:
        """Delete edges in the context; ``None`` ids means every grantee."""
        ...

    @abstractmethod
    async def sync(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Sequence[int],
        context: ContextRef,
        detaching: bool = True,
    ) -> Dict[str, List[int]]:
        """Replace the edge set for the context, return attached and detached ids."""
        ...

    @abstractmethod
    async def exists(
        self,
        relation: Relation,
        owners: Sequence[EntityRef],
        grantee_id: int,
        context_filter: ContextFilter,
    ) -> bool:
        """Check whether any of the owners holds the grantee."""
        ...

    @abstractmethod
    async def grantee_ids(
        self,
        relation: Relation,
        owners: Sequence[EntityRef],
        context_filter: ContextFilter,
    ) -> Set[int]:
        """Distinct grantee ids held by any of the owners."""
        ...

    @abstractmethod
    async def grantee_map(self, relation: Relation) -> Dict[str, Set[int]]:
        """Map owner id to grantee ids for every global edge of the relation."""
        ...

    @abstractmethod
    async def contexts_for(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_id: int,
    ) -> List[ContextRef]:
        """Distinct non-global contexts in which the owner holds the grantee."""
        ...

    @abstractmethod
    async def purge_owner(self, owner: EntityRef) -> int:
        """Delete every edge owned by the owner, return the number removed."""
        ...

    @abstractmethod
    async def purge_grantee(self, relation: Relation, grantee_id: int) -> int:
        """Delete every edge pointing at the grantee."""
        ...


@runtime_checkable
class DefinitionStore(Protocol):
    """Persisted permission, role and capability definitions."""

    @abstractmethod
    async def list_all(self, kind: DefinitionKind) -> List[Definition]:
        """Every definition of the kind across guards."""
        ...

    @abstractmethod
    async def find_by_name(self, kind: DefinitionKind, name: str, guard: str) -> Optional[Definition]:
        ...

    @abstractmethod
    async def create(self, definition: Definition) -> Definition:
        """Persist a new definition and return it with its id."""
        ...

    @abstractmethod
    async def update(self, definition: Definition) -> Definition:
        """Persist cosmetic and binding changes of an existing definition."""
        ...

    @abstractmethod
    async def delete(self, kind: DefinitionKind, definition_id: int) -> bool:
        ...


@runtime_checkable
class FeatureAccessHandler(Protocol):
    """Host supplied feature activation and access checks.

    ``feature`` is the feature-typed context the check is scoped to. When the
    caller passed a model, ``feature.source`` is that model.
    """

    @abstractmethod
    async def is_active(self, feature: ContextRef) -> bool:
        ...

    @abstractmethod
    async def has_access(self, feature: ContextRef, subject: Subject) -> bool:
        ...

    @abstractmethod
    async def can_access(self, feature: ContextRef, subject: Subject) -> bool:
        """Active and accessible."""
        ...


@runtime_checkable
class FeatureFlags(Protocol):
    """Resolves feature flags bound to permission and role definitions."""

    @abstractmethod
    async def is_enabled(self, flag: str, subject: Subject) -> bool:
        ...
