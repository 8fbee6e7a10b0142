"""Embedding input text for entities.

The layout is fixed: changing it changes every regenerated vector, so
existing embeddings would no longer be reproducible.
"""

from memento.graph.models import Entity


def build_embedding_text(name: str, entity_type: str, observations: list[str]) -> str:
    lines = [f"Entity: {name}", f"Type: {entity_type}"]
    if observations:
        lines.append(f"Observations: {'; '.join(observations)}")
    return "\n".join(lines)


def entity_text(entity: Entity) -> str:
    return build_embedding_text(entity.name, entity.entity_type, entity.observations)
