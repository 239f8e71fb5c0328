"""
Permission Grants and the Role Table

A role owns an ordered list of grants. A grant is one of two variants:

    FullAccess                      module "*" with actions "*"
    ModuleGrant(module, actions)    one module; actions is a set, or the
                                    wildcard (all_actions=True)

The role table maps every Role to its RoleDefinition. It is read from
config/roles.yaml once per process (get_role_table) and never written
afterwards, so it is shared freely between requests.

YAML format:

    FirmAdmin:
      description: Full access within tenant
      permissions:
        - module: clients
          actions: [view, create, edit, delete]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Optional, Tuple, Union

import yaml

from core.exceptions import RoleTableError
from .roles import Role, parse_role

logger = logging.getLogger(__name__)

WILDCARD = "*"


@dataclass(frozen=True)
class FullAccess:
    """Unconditional access to every module and action."""

    def to_dict(self) -> Dict[str, Any]:
        return {"module": WILDCARD, "actions": [WILDCARD]}


@dataclass(frozen=True)
class ModuleGrant:
    """Actions allowed on a single module."""

    module: str
    actions: FrozenSet[str] = frozenset()
    all_actions: bool = False

    def allows(self, action: str) -> bool:
        """True if this grant covers the action."""
        return self.all_actions or action in self.actions

    def to_dict(self) -> Dict[str, Any]:
        actions = [WILDCARD] if self.all_actions else sorted(self.actions)
        return {"module": self.module, "actions": actions}


PermissionGrant = Union[FullAccess, ModuleGrant]


@dataclass(frozen=True)
class RoleDefinition:
    """A role and its ordered grants."""

    role: Role
    description: str
    grants: Tuple[PermissionGrant, ...]

    @property
    def has_full_access(self) -> bool:
        return any(isinstance(grant, FullAccess) for grant in self.grants)

    def grant_for(self, module: str) -> Optional[ModuleGrant]:
        """Return the grant for a module, if the role has one."""
        for grant in self.grants:
            if isinstance(grant, ModuleGrant) and grant.module == module:
                return grant
        return None

    @property
    def modules(self) -> Tuple[str, ...]:
        """Modules named by specific grants, in declaration order."""
        return tuple(g.module for g in self.grants if isinstance(g, ModuleGrant))


class RoleTable(Mapping[Role, RoleDefinition]):
    """Read-only mapping of Role -> RoleDefinition."""

    def __init__(self, definitions: Mapping[Role, RoleDefinition]):
        self._definitions = MappingProxyType(dict(definitions))

    def __getitem__(self, role: Role) -> RoleDefinition:
        return self._definitions[role]

    def __iter__(self) -> Iterator[Role]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def lookup(self, role: Union[str, Role, None]) -> Optional[RoleDefinition]:
        """Find a role's definition; None for unknown or unlisted roles."""
        parsed = parse_role(role)
        if parsed is None:
            return None
        return self._definitions.get(parsed)


# =============================================================================
# LOADING
# =============================================================================


def parse_grant(raw: Any, role_name: str) -> PermissionGrant:
    """
    Turn one YAML grant entry into a grant variant.

    Raises:
        RoleTableError: If the entry is malformed.
    """
    if not isinstance(raw, Mapping):
        raise RoleTableError(f"{role_name}: grant must be a mapping, got {type(raw).__name__}")

    module = raw.get("module")
    actions = raw.get("actions")

    if not isinstance(module, str) or not module:
        raise RoleTableError(f"{role_name}: grant is missing a module name")
    if not isinstance(actions, (list, tuple)) or not all(isinstance(a, str) for a in actions):
        raise RoleTableError(f"{role_name}: actions for '{module}' must be a list of strings")

    all_actions = WILDCARD in actions

    if module == WILDCARD:
        if not all_actions:
            raise RoleTableError(
                f"{role_name}: module '*' is only valid with actions ['*']"
            )
        return FullAccess()

    return ModuleGrant(
        module=module,
        actions=frozenset(a for a in actions if a != WILDCARD),
        all_actions=all_actions,
    )


def build_role_table(raw_table: Mapping[str, Any]) -> RoleTable:
    """
    Build a RoleTable from parsed YAML (role name -> definition).

    Raises:
        RoleTableError: On unknown role names, duplicate modules or bad grants.
    """
    if not isinstance(raw_table, Mapping):
        raise RoleTableError("Role table must be a mapping of role name to definition")

    definitions: Dict[Role, RoleDefinition] = {}

    for role_name, body in raw_table.items():
        role = parse_role(role_name)
        if role is None:
            raise RoleTableError(f"Unknown role in role table: {role_name!r}")

        body = body or {}
        grants = tuple(parse_grant(raw, role_name) for raw in body.get("permissions") or [])

        seen = set()
        for grant in grants:
            if isinstance(grant, ModuleGrant):
                if grant.module in seen:
                    raise RoleTableError(f"{role_name}: module '{grant.module}' is granted twice")
                seen.add(grant.module)

        definitions[role] = RoleDefinition(
            role=role,
            description=body.get("description", ""),
            grants=grants,
        )

    return RoleTable(definitions)


def load_role_table(path: Optional[Path] = None) -> RoleTable:
    """
    Read and validate the role table YAML file.

    Args:
        path: YAML file; defaults to RBAC_ROLE_TABLE_PATH / config/roles.yaml

    Raises:
        RoleTableError: If the file is missing or invalid.
    """
    if path is None:
        from config.settings import RBACSettings
        path = RBACSettings().role_table_path

    path = Path(path)
    if not path.exists():
        raise RoleTableError(f"Role table not found: {path}")

    with open(path, "r") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RoleTableError(f"Role table {path} is not valid YAML: {e}") from e

    table = build_role_table(raw or {})
    logger.info(
        f"Loaded role table from {path}",
        extra={"roles": len(table)},
    )
    return table


@lru_cache
def get_role_table() -> RoleTable:
    """Get the process-wide role table, loading it on first use."""
    return load_role_table()
