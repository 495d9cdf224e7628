"""SQL for the asyncpg stores.

Table names are formatted with the configured schema; values always travel
as $n parameters.
"""

from typing import Any, List, Tuple

from ..entities import ContextFilter

CREATE_DEFINITIONS_TABLE = """
    CREATE TABLE IF NOT EXISTS {schema}.authz_definitions (
        id BIGSERIAL PRIMARY KEY,
        kind TEXT NOT NULL,
        name TEXT NOT NULL,
        guard TEXT NOT NULL,
        label TEXT,
        description TEXT,
        feature TEXT,
        inherits_from TEXT[] NOT NULL DEFAULT '{{}}',
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        CONSTRAINT authz_definitions_kind_name_guard_key UNIQUE (kind, name, guard)
    )
"""

CREATE_GRANTS_TABLE = """
    CREATE TABLE IF NOT EXISTS {schema}.authz_grants (
        relation TEXT NOT NULL,
        owner_type TEXT NOT NULL,
        owner_id TEXT NOT NULL,
        grantee_id BIGINT NOT NULL,
        context_type TEXT,
        context_id TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        CHECK ((context_type IS NULL) = (context_id IS NULL))
    )
"""

CREATE_GRANTS_INDEXES = [
    """
    CREATE UNIQUE INDEX IF NOT EXISTS authz_grants_edge_key ON {schema}.authz_grants (
        relation, owner_type, owner_id, grantee_id,
        COALESCE(context_type, ''), COALESCE(context_id, '')
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS authz_grants_owner_idx
        ON {schema}.authz_grants (relation, owner_type, owner_id)
    """,
    """
    CREATE INDEX IF NOT EXISTS authz_grants_grantee_idx
        ON {schema}.authz_grants (relation, grantee_id)
    """,
]

DEFINITION_COLUMNS = "id, kind, name, guard, label, description, feature, inherits_from, created_at, updated_at"

LIST_DEFINITIONS = f"""
    SELECT {DEFINITION_COLUMNS}
    FROM {{schema}}.authz_definitions
    WHERE kind = $1
    ORDER BY guard, name
"""

FIND_DEFINITION = f"""
    SELECT {DEFINITION_COLUMNS}
    FROM {{schema}}.authz_definitions
    WHERE kind = $1 AND name = $2 AND guard = $3
"""

INSERT_DEFINITION = f"""
    INSERT INTO {{schema}}.authz_definitions
        (kind, name, guard, label, description, feature, inherits_from)
    VALUES ($1, $2, $3, $4, $5, $6, $7)
    RETURNING {DEFINITION_COLUMNS}
"""

UPDATE_DEFINITION = f"""
    UPDATE {{schema}}.authz_definitions
    SET label = $3, description = $4, feature = $5, inherits_from = $6, updated_at = now()
    WHERE kind = $1 AND id = $2
    RETURNING {DEFINITION_COLUMNS}
"""

DELETE_DEFINITION = """
    DELETE FROM {schema}.authz_definitions WHERE kind = $1 AND id = $2
"""

# $1 relation, $2 owner_type, $3 owner_id, $4 grantee ids, $5 context_type, $6 context_id
INSERT_GRANTS = """
    INSERT INTO {schema}.authz_grants
        (relation, owner_type, owner_id, grantee_id, context_type, context_id)
    SELECT $1::text, $2::text, $3::text, grantee_id, $5::text, $6::text
    FROM unnest($4::bigint[]) AS grantee_id
    ON CONFLICT DO NOTHING
    RETURNING grantee_id
"""

# $1 relation, $2 owner_type, $3 owner_id, $4 context_type, $5 context_id
DELETE_GRANTS = """
    DELETE FROM {schema}.authz_grants
    WHERE relation = $1 AND owner_type = $2 AND owner_id = $3
      AND context_type IS NOT DISTINCT FROM $4 AND context_id IS NOT DISTINCT FROM $5
"""

DELETE_GRANTS_IN = DELETE_GRANTS + " AND grantee_id = ANY($6::bigint[]) RETURNING grantee_id"
DELETE_GRANTS_NOT_IN = DELETE_GRANTS + " AND NOT (grantee_id = ANY($6::bigint[])) RETURNING grantee_id"
DELETE_GRANTS_ALL = DELETE_GRANTS + " RETURNING grantee_id"

GRANTEE_MAP = """
    SELECT owner_id, grantee_id
    FROM {schema}.authz_grants
    WHERE relation = $1 AND context_type IS NULL AND context_id IS NULL
"""

CONTEXTS_FOR = """
    SELECT DISTINCT context_type, context_id
    FROM {schema}.authz_grants
    WHERE relation = $1 AND owner_type = $2 AND owner_id = $3 AND grantee_id = $4
      AND context_type IS NOT NULL
    ORDER BY context_type, context_id
"""

PURGE_OWNER = """
    DELETE FROM {schema}.authz_grants WHERE owner_type = $1 AND owner_id = $2
"""

PURGE_GRANTEE = """
    DELETE FROM {schema}.authz_grants WHERE relation = $1 AND grantee_id = $2
"""


def context_clause(context_filter: ContextFilter, start: int) -> Tuple[str, List[Any]]:
    """SQL predicate and parameters for a context filter, numbering from ``$start``."""
    parts = []
    params: List[Any] = []
    index = start
    for target in context_filter.targets:
        if target.is_global:
            parts.append("(context_type IS NULL AND context_id IS NULL)")
        else:
            parts.append(f"(context_type = ${index} AND context_id = ${index + 1})")
            params.extend([target.type, target.id])
            index += 2
    return "(" + " OR ".join(parts) + ")", params


def owners_clause(owners_count: int, start: int) -> str:
    """Predicate matching any of ``owners_count`` (owner_type, owner_id) pairs."""
    pairs = [
        f"(owner_type = ${start + 2 * i} AND owner_id = ${start + 2 * i + 1})"
        for i in range(owners_count)
    ]
    return "(" + " OR ".join(pairs) + ")"


def rows_affected(status: str) -> int:
    """Parse the row count out of an asyncpg command status such as ``DELETE 3``."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0
