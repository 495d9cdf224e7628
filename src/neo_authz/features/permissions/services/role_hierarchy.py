"""Role inheritance.

A role may name parent roles in the same guard. Holding a role implies
holding every ancestor. Unknown parent names are skipped; a cycle is a
configuration error.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Set

from ....core.exceptions import CircularRoleInheritanceError
from ..entities import Role

logger = logging.getLogger(__name__)


class RoleHierarchy:
    """Walks ``inherits_from`` links over a name to role mapping of one guard."""

    def ancestors(self, role_names: Iterable[str], roles_by_name: Mapping[str, Role]) -> Set[str]:
        """Names of the given roles plus every ancestor."""
        resolved: Set[str] = set()
        for name in role_names:
            self._walk(name, roles_by_name, [], resolved)
        return resolved

    def inheritance_chain(self, role: Role, roles_by_name: Mapping[str, Role]) -> List[str]:
        """Ancestors first, ending with ``role`` itself; each name appears once."""
        self.validate(roles_by_name)
        chain: List[str] = []
        self._build_chain(role, roles_by_name, chain, set())
        return chain

    def _build_chain(
        self,
        role: Role,
        roles_by_name: Mapping[str, Role],
        chain: List[str],
        visited: Set[str],
    ) -> None:
        if role.name in visited:
            return
        visited.add(role.name)
        for name in role.inherits_from:
            parent = roles_by_name.get(name)
            if parent is not None:
                self._build_chain(parent, roles_by_name, chain, visited)
        chain.append(role.name)

    def validate(self, roles_by_name: Mapping[str, Role]) -> None:
        """Raise CircularRoleInheritanceError if any role reaches itself."""
        resolved: Set[str] = set()
        for name in roles_by_name:
            self._walk(name, roles_by_name, [], resolved)

    def _walk(
        self,
        name: str,
        roles_by_name: Mapping[str, Role],
        path: List[str],
        resolved: Set[str],
    ) -> None:
        if name in path:
            raise CircularRoleInheritanceError(path[path.index(name):] + [name])
        role = roles_by_name.get(name)
        if role is None:
            if path:
                logger.debug(f"Role '{path[-1]}' inherits from unknown role '{name}', skipping")
            return
        if name in resolved:
            return
        path.append(name)
        for parent in role.inherits_from:
            self._walk(parent, roles_by_name, path, resolved)
        path.pop()
        resolved.add(name)


def index_by_name(roles: Iterable[Role]) -> Dict[str, Role]:
    return {role.name: role for role in roles}
