"""Neo4j GraphStore implementation.

Uses the async Neo4j driver with one session per operation. Vector search
goes through ``db.index.vector.queryNodes``; index introspection through
``SHOW VECTOR INDEXES``. Every query is restricted to live entities
(``validTo`` null or the max-int sentinel).
"""

import json
from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import AuthError, Neo4jError, ServiceUnavailable

from memento.errors import GraphStoreError, StoreUnavailableError
from memento.graph.models import (
    LIVE_VALID_TO,
    Entity,
    EntityFilter,
    ScoredEntity,
    VectorIndexDefinition,
    VectorIndexInfo,
)
from memento.graph.stores.base import GraphStore
from memento.observability.logging import get_logger

logger = get_logger(__name__)

LIVE = "(e.validTo IS NULL OR e.validTo = $live)"

ENTITY_FIELDS = """
    e.name AS name,
    e.id AS id,
    e.entityType AS entityType,
    e.observations AS observations,
    e.embedding AS embedding,
    e.embeddingModel AS embeddingModel,
    e.embeddingDimensions AS embeddingDimensions,
    e.embeddingUpdated AS embeddingUpdated,
    e.createdAt AS createdAt,
    e.validTo AS validTo
"""

CLEAR_PROPERTIES = (
    "e.embedding, e.embeddingModel, e.embeddingDimensions, e.embeddingUpdated"
)


def _entity_from_record(record: dict[str, Any]) -> Entity:
    data: dict[str, Any] = {
        "name": record["name"],
        "entity_type": record.get("entityType") or "",
        "observations": list(record.get("observations") or []),
        "embedding": record.get("embedding"),
        "embedding_model": record.get("embeddingModel"),
        "embedding_dimensions": record.get("embeddingDimensions"),
        "embedding_updated": record.get("embeddingUpdated"),
        "valid_to": record.get("validTo"),
    }
    if record.get("id"):
        data["id"] = str(record["id"])
    if record.get("createdAt") is not None:
        data["created_at"] = int(record["createdAt"])
    return Entity(**data)


def _scored_from_record(record: dict[str, Any], score: float | None = None) -> ScoredEntity:
    return ScoredEntity(
        name=record["name"],
        score=float(record["score"]) if score is None else score,
        entity_type=record.get("entityType") or "",
        observations=list(record.get("observations") or []),
    )


class Neo4jGraphStore(GraphStore):
    """GraphStore backed by Neo4j 5.x vector indexes."""

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        username: str = "neo4j",
        password: str = "",
        database: str = "neo4j",
        entity_label: str = "Entity",
        driver: AsyncDriver | None = None,
    ):
        """Initialize Neo4j store.

        Args:
            uri: Bolt connection URI
            username: Database user
            password: Database password
            database: Database name
            entity_label: Label carried by entity nodes
            driver: Pre-built driver (takes precedence over connection args)
        """
        self._driver = driver or AsyncGraphDatabase.driver(uri, auth=(username, password))
        self._database = database
        self._label = entity_label

    @property
    def backend_name(self) -> str:
        return "neo4j"

    async def _run(self, query: str, **params: Any) -> list[dict[str, Any]]:
        """Run one auto-commit query and return its records as dictionaries."""
        params.setdefault("live", LIVE_VALID_TO)
        query = query.replace(":Entity", f":{self._label}")
        try:
            async with self._driver.session(database=self._database) as session:
                result = await session.run(query, params)
                return await result.data()
        except (ServiceUnavailable, AuthError) as e:
            logger.error("neo4j_unavailable", error=str(e))
            raise StoreUnavailableError(f"Neo4j is unavailable: {e}") from e
        except Neo4jError as e:
            logger.error("neo4j_query_error", code=e.code, error=str(e))
            raise GraphStoreError(f"Neo4j query failed: {e}") from e

    async def _scalar(self, query: str, key: str = "count", **params: Any) -> int:
        records = await self._run(query, **params)
        if not records:
            return 0
        return int(records[0][key] or 0)

    # Population statistics

    async def count_entities(self, has_embedding: bool | None = None) -> int:
        condition = ""
        if has_embedding is True:
            condition = "AND e.embedding IS NOT NULL"
        elif has_embedding is False:
            condition = "AND e.embedding IS NULL"
        return await self._scalar(
            f"MATCH (e:Entity) WHERE {LIVE} {condition} RETURN count(e) AS count"
        )

    async def dimension_counts(self) -> dict[int, int]:
        records = await self._run(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND e.embedding IS NOT NULL
            RETURN size(e.embedding) AS dimensions, count(e) AS count
            ORDER BY dimensions
            """
        )
        return {int(r["dimensions"]): int(r["count"]) for r in records}

    async def count_dimension_mismatches(self, expected: int) -> int:
        return await self._scalar(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND e.embedding IS NOT NULL AND size(e.embedding) <> $expected
            RETURN count(e) AS count
            """,
            expected=expected,
        )

    async def list_dimension_mismatches(self, expected: int, limit: int) -> list[Entity]:
        records = await self._run(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND e.embedding IS NOT NULL AND size(e.embedding) <> $expected
            RETURN e.name AS name, e.entityType AS entityType,
                   size(e.embedding) AS embeddingDimensions
            ORDER BY e.name
            LIMIT $limit
            """,
            expected=expected,
            limit=limit,
        )
        # Only the length is transferred, as embedding_dimensions
        return [
            Entity(
                name=r["name"],
                entity_type=r.get("entityType") or "",
                embedding_dimensions=int(r["embeddingDimensions"]),
            )
            for r in records
        ]

    async def list_missing_embeddings(self, limit: int) -> list[Entity]:
        records = await self._run(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND e.embedding IS NULL
            RETURN e.name AS name, e.entityType AS entityType
            ORDER BY e.name
            LIMIT $limit
            """,
            limit=limit,
        )
        return [Entity(name=r["name"], entity_type=r.get("entityType") or "") for r in records]

    # Migration primitives

    def _embedding_condition(self, mismatched_with: int | None) -> str:
        if mismatched_with is None:
            return "e.embedding IS NOT NULL"
        return "e.embedding IS NOT NULL AND size(e.embedding) <> $target"

    async def count_embeddings(self, mismatched_with: int | None = None) -> int:
        return await self._scalar(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND {self._embedding_condition(mismatched_with)}
            RETURN count(e) AS count
            """,
            target=mismatched_with,
        )

    async def clear_embeddings(self, mismatched_with: int | None = None) -> int:
        return await self._scalar(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND {self._embedding_condition(mismatched_with)}
            REMOVE {CLEAR_PROPERTIES}
            RETURN count(e) AS count
            """,
            target=mismatched_with,
        )

    async def backup_embeddings(self) -> int:
        return await self._scalar(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND e.embedding IS NOT NULL
            SET e.embedding_backup = e.embedding,
                e.embedding_backup_timestamp = timestamp()
            RETURN count(e) AS count
            """
        )

    async def count_backups(self) -> int:
        return await self._scalar(
            "MATCH (e:Entity) WHERE e.embedding_backup IS NOT NULL RETURN count(e) AS count"
        )

    async def restore_embeddings(self) -> int:
        return await self._scalar(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND e.embedding_backup IS NOT NULL
            SET e.embedding = e.embedding_backup,
                e.embeddingDimensions = size(e.embedding_backup)
            REMOVE e.embedding_backup, e.embedding_backup_timestamp
            RETURN count(e) AS count
            """
        )

    async def cleanup_backups(self) -> int:
        return await self._scalar(
            """
            MATCH (e:Entity)
            WHERE e.embedding_backup IS NOT NULL
            REMOVE e.embedding_backup, e.embedding_backup_timestamp
            RETURN count(e) AS count
            """
        )

    async def list_entity_names_needing_embeddings(
        self, target_dimensions: int, regenerate_all: bool = False
    ) -> list[str]:
        condition = (
            "true"
            if regenerate_all
            else "(e.embedding IS NULL OR size(e.embedding) <> $target)"
        )
        records = await self._run(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND {condition}
            RETURN e.name AS name
            ORDER BY e.createdAt DESC, e.name
            """,
            target=target_dimensions,
        )
        return [r["name"] for r in records]

    # Index administration

    async def get_vector_index(self, name: str) -> VectorIndexInfo | None:
        records = await self._run(
            """
            SHOW VECTOR INDEXES
            YIELD name, state, labelsOrTypes, properties, options
            WHERE name = $name
            RETURN name, state, labelsOrTypes, properties, options
            """,
            name=name,
        )
        if not records:
            return None
        record = records[0]
        index_config = (record.get("options") or {}).get("indexConfig") or {}
        dimensions = index_config.get("vector.dimensions")
        labels = record.get("labelsOrTypes") or []
        properties = record.get("properties") or []
        return VectorIndexInfo(
            name=record["name"],
            state=record["state"],
            dimensions=int(dimensions) if dimensions is not None else None,
            similarity_function=index_config.get("vector.similarity_function"),
            label=labels[0] if labels else None,
            property_name=properties[0] if properties else None,
        )

    async def create_vector_index(self, definition: VectorIndexDefinition) -> None:
        # Index DDL cannot be parameterised
        await self._run(
            f"""
            CREATE VECTOR INDEX `{definition.name}` IF NOT EXISTS
            FOR (e:{definition.label}) ON (e.{definition.property_name})
            OPTIONS {{indexConfig: {{
                `vector.dimensions`: {int(definition.dimensions)},
                `vector.similarity_function`: '{definition.similarity_function}'
            }}}}
            """
        )

    async def drop_vector_index(self, name: str) -> bool:
        existing = await self.get_vector_index(name)
        if existing is None:
            return False
        await self._run(f"DROP INDEX `{name}` IF EXISTS")
        return True

    # Reindex primitives

    def _filter_clause(self, entity_filter: EntityFilter) -> tuple[str, dict[str, Any]]:
        conditions = [LIVE]
        params: dict[str, Any] = {}
        if entity_filter.entity_types:
            conditions.append("e.entityType IN $entityTypes")
            params["entityTypes"] = entity_filter.entity_types
        if entity_filter.name_pattern:
            conditions.append("e.name =~ $namePattern")
            params["namePattern"] = entity_filter.name_pattern
        if entity_filter.missing_only:
            conditions.append("e.embedding IS NULL")
        return " AND ".join(conditions), params

    async def select_entities(self, entity_filter: EntityFilter) -> list[Entity]:
        where, params = self._filter_clause(entity_filter)
        limit = "LIMIT $limit" if entity_filter.limit else ""
        records = await self._run(
            f"""
            MATCH (e:Entity)
            WHERE {where}
            RETURN {ENTITY_FIELDS}
            ORDER BY e.createdAt DESC, e.name
            {limit}
            """,
            limit=entity_filter.limit,
            **params,
        )
        return [_entity_from_record(r) for r in records]

    async def count_entities_matching(self, entity_filter: EntityFilter) -> int:
        where, params = self._filter_clause(entity_filter)
        count = await self._scalar(
            f"MATCH (e:Entity) WHERE {where} RETURN count(e) AS count",
            **params,
        )
        if entity_filter.limit:
            return min(count, entity_filter.limit)
        return count

    async def run_selection_query(self, query: str, params: dict[str, Any]) -> list[Entity]:
        records = await self._run(query, **params)
        entities = []
        for record in records:
            entities.append(
                Entity(
                    name=record["name"],
                    entity_type=record.get("type") or record.get("entityType") or "",
                    observations=list(record.get("observations") or []),
                )
            )
        return entities

    async def set_embedding(
        self,
        name: str,
        vector: list[float],
        *,
        model: str,
        dimensions: int,
    ) -> bool:
        records = await self._run(
            f"""
            MATCH (e:Entity {{name: $name}})
            WHERE {LIVE}
            SET e.embedding = $embedding,
                e.embeddingModel = $model,
                e.embeddingDimensions = $dimensions,
                e.embeddingUpdated = timestamp()
            RETURN e.name AS name
            """,
            name=name,
            embedding=vector,
            model=model,
            dimensions=dimensions,
        )
        return bool(records)

    async def remove_embeddings(self, names: list[str]) -> int:
        if not names:
            return 0
        return await self._scalar(
            f"""
            MATCH (e:Entity)
            WHERE e.name IN $names AND e.embedding IS NOT NULL
            REMOVE {CLEAR_PROPERTIES}
            RETURN count(e) AS count
            """,
            names=names,
        )

    # Search primitives

    async def upsert_vector(
        self, name: str, vector: list[float], metadata: dict[str, Any] | None = None
    ) -> None:
        metadata = metadata or {}
        await self._run(
            """
            MERGE (e:Entity {name: $name})
            ON CREATE SET e.entityType = $entityType,
                          e.observations = [],
                          e.createdAt = timestamp()
            SET e.embedding = $embedding,
                e.metadata = $metadata
            """,
            name=name,
            entityType=str(metadata.get("entity_type", "")),
            embedding=vector,
            metadata=json.dumps(metadata, default=str),
        )

    async def remove_vector(self, name: str) -> bool:
        records = await self._run(
            """
            MATCH (e:Entity {name: $name})
            WHERE e.embedding IS NOT NULL
            REMOVE e.embedding, e.metadata
            RETURN e.name AS name
            """,
            name=name,
        )
        return bool(records)

    async def vector_query(
        self, index_name: str, k: int, vector: list[float]
    ) -> list[ScoredEntity]:
        records = await self._run(
            """
            CALL db.index.vector.queryNodes($indexName, $k, $vector)
            YIELD node AS e, score
            WHERE e.validTo IS NULL OR e.validTo = $live
            RETURN e.name AS name, e.entityType AS entityType,
                   e.observations AS observations, score
            ORDER BY score DESC
            """,
            indexName=index_name,
            k=int(k),
            vector=vector,
        )
        return [_scored_from_record(r) for r in records]

    async def keyword_query(self, text: str, limit: int) -> list[ScoredEntity]:
        records = await self._run(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE}
            WITH e, toLower($text) AS q
            WITH e,
                 (CASE WHEN toLower(e.name) CONTAINS q THEN 2.0 ELSE 0.0 END)
                 + 0.5 * size([o IN coalesce(e.observations, []) WHERE toLower(o) CONTAINS q])
                 AS score
            WHERE score > 0
            RETURN e.name AS name, e.entityType AS entityType,
                   e.observations AS observations, score
            ORDER BY score DESC, e.createdAt ASC, e.name
            LIMIT $limit
            """,
            text=text,
            limit=limit,
        )
        return [_scored_from_record(r) for r in records]

    async def pattern_query(
        self, name_pattern: str, observation_pattern: str, limit: int
    ) -> list[ScoredEntity]:
        records = await self._run(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE}
              AND (e.name =~ $namePattern
                   OR any(o IN coalesce(e.observations, []) WHERE o =~ $observationPattern))
            RETURN e.name AS name, e.entityType AS entityType, e.observations AS observations
            ORDER BY e.createdAt ASC, e.name
            LIMIT $limit
            """,
            namePattern=name_pattern,
            observationPattern=observation_pattern,
            limit=limit,
        )
        return [_scored_from_record(r, score=0.0) for r in records]

    async def recent_entities(
        self, limit: int, exclude: list[str] | None = None
    ) -> list[ScoredEntity]:
        records = await self._run(
            f"""
            MATCH (e:Entity)
            WHERE {LIVE} AND NOT e.name IN $exclude
            RETURN e.name AS name, e.entityType AS entityType, e.observations AS observations
            ORDER BY e.createdAt DESC, e.name
            LIMIT $limit
            """,
            exclude=exclude or [],
            limit=limit,
        )
        return [_scored_from_record(r, score=0.0) for r in records]

    async def close(self) -> None:
        await self._driver.close()
