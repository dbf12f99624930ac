"""Schema model: entities, foreign keys and relationships."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from relcourse.core.schema.types import (
    Attribute,
    Cardinality,
    Entity,
    ForeignKey,
    Participation,
    Relationship,
)
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")


@dataclass
class SchemaModel:
    """Complete data dictionary for one relational schema."""

    entities: Dict[str, Entity] = field(default_factory=dict)
    foreign_keys: List[ForeignKey] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)
    name: Optional[str] = None

    def add_entity(self, entity: Entity) -> None:
        """Add an entity, replacing any entity with the same name."""
        if entity.name in self.entities:
            logger.debug(f"Replacing entity definition for {entity.name}")
        self.entities[entity.name] = entity

    def get_entity(self, name: str) -> Entity:
        """Look up an entity by name.

        Raises:
            KeyError: If the entity does not exist
        """
        if name not in self.entities:
            raise KeyError(
                f"Entity '{name}' not found. Available: {sorted(self.entities)}"
            )
        return self.entities[name]

    def save(self, path: str | Path) -> None:
        """Save the schema to JSON, or YAML for .yml/.yaml paths.

        Args:
            path: Output file path
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.to_dict()

        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(data, f, indent=2)

        logger.info(f"Saved schema with {len(self.entities)} entities to {path}")

    @classmethod
    def load(cls, path: str | Path) -> SchemaModel:
        """Load a schema from a JSON or YAML file.

        Args:
            path: Path to the schema file

        Returns:
            SchemaModel instance
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Schema file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Schema file must contain a mapping: {path}")

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "entities": {
                name: {
                    "attributes": [
                        {
                            "name": attr.name,
                            "dtype": attr.dtype,
                            "kind": attr.kind.value,
                            "nullable": attr.nullable,
                            "default": attr.default,
                            "components": attr.components,
                            "expression": attr.expression,
                            "stored": attr.stored,
                            "description": attr.description,
                        }
                        for attr in entity.attributes.values()
                    ],
                    "primary_key": entity.primary_key,
                    "alternate_keys": entity.alternate_keys,
                    "description": entity.description,
                }
                for name, entity in self.entities.items()
            },
            "foreign_keys": [
                {
                    "name": fk.name,
                    "child_table": fk.child_table,
                    "child_columns": fk.child_columns,
                    "parent_table": fk.parent_table,
                    "parent_columns": fk.parent_columns,
                    "on_delete": fk.on_delete.value,
                    "on_update": fk.on_update.value,
                    "coverage": fk.coverage,
                }
                for fk in self.foreign_keys
            ],
            "relationships": [
                {
                    "name": rel.name,
                    "left": rel.left,
                    "right": rel.right,
                    "cardinality": rel.cardinality.value,
                    "left_participation": rel.left_participation.value,
                    "right_participation": rel.right_participation.value,
                    "via": rel.via,
                }
                for rel in self.relationships
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SchemaModel:
        """Create from dictionary.

        Single-column shorthand is accepted for keys and foreign keys
        (`primary_key: id`, `child_column: customer_id`), which keeps
        hand-written YAML dictionaries short.

        Args:
            data: Dictionary with schema data

        Returns:
            SchemaModel instance
        """
        entities = {}
        for name, meta in (data.get("entities") or {}).items():
            attributes = [
                _attribute_from_dict(attr) for attr in meta.get("attributes", [])
            ]
            entities[name] = Entity.build(
                name,
                attributes,
                primary_key=_as_list(meta.get("primary_key")),
                alternate_keys=[_as_list(k) for k in meta.get("alternate_keys", [])],
                description=meta.get("description"),
            )

        foreign_keys = [
            ForeignKey(
                child_table=fk["child_table"],
                child_columns=_as_list(fk.get("child_columns", fk.get("child_column"))),
                parent_table=fk["parent_table"],
                parent_columns=_as_list(
                    fk.get("parent_columns", fk.get("parent_column"))
                ),
                on_delete=fk.get("on_delete"),
                on_update=fk.get("on_update"),
                name=fk.get("name"),
                coverage=fk.get("coverage"),
            )
            for fk in data.get("foreign_keys") or []
        ]

        relationships = [
            Relationship(
                name=rel["name"],
                left=rel["left"],
                right=rel["right"],
                cardinality=rel.get("cardinality", Cardinality.ONE_TO_MANY.value),
                left_participation=rel.get(
                    "left_participation", Participation.OPTIONAL.value
                ),
                right_participation=rel.get(
                    "right_participation", Participation.OPTIONAL.value
                ),
                via=rel.get("via"),
            )
            for rel in data.get("relationships") or []
        ]

        return cls(
            entities=entities,
            foreign_keys=foreign_keys,
            relationships=relationships,
            name=data.get("name"),
        )

    def get_related_tables(self, table_name: str) -> List[str]:
        """Get all tables related to the given table via foreign keys.

        Args:
            table_name: Table name

        Returns:
            Sorted list of related table names
        """
        related = set()

        for fk in self.foreign_keys:
            if fk.child_table == table_name:
                related.add(fk.parent_table)
            elif fk.parent_table == table_name:
                related.add(fk.child_table)

        return sorted(related)

    def get_foreign_keys_for_table(
        self, table_name: str, direction: str = "both"
    ) -> List[ForeignKey]:
        """Get foreign keys involving a table.

        Args:
            table_name: Table name
            direction: 'outgoing' (child), 'incoming' (parent), or 'both'

        Returns:
            List of ForeignKey objects
        """
        if direction == "outgoing":
            return [fk for fk in self.foreign_keys if fk.child_table == table_name]
        elif direction == "incoming":
            return [fk for fk in self.foreign_keys if fk.parent_table == table_name]
        elif direction == "both":
            return [
                fk
                for fk in self.foreign_keys
                if fk.child_table == table_name or fk.parent_table == table_name
            ]
        raise ValueError(
            f"Unknown direction '{direction}', expected outgoing, incoming or both"
        )

    def association_entities(self) -> Dict[str, List[ForeignKey]]:
        """Find entities that realize a many-to-many relationship.

        An association entity holds two foreign keys to two parents, and its
        primary key (or an alternate key) is exactly their combined columns.

        Returns:
            Dict mapping association entity name -> its two foreign keys
        """
        associations = {}
        for name, entity in self.entities.items():
            outgoing = [
                fk
                for fk in self.get_foreign_keys_for_table(name, "outgoing")
                if not fk.is_self_referencing
            ]
            if len(outgoing) < 2:
                continue
            for i, first in enumerate(outgoing):
                for second in outgoing[i + 1 :]:
                    combined = first.child_columns + second.child_columns
                    if entity.is_key(combined):
                        associations[name] = [first, second]
                        break
                if name in associations:
                    break
        return associations

    def infer_relationships(self) -> List[Relationship]:
        """Derive relationships from foreign keys.

        Returns:
            One relationship per FK outside association entities, plus one
            M:N relationship per association entity
        """
        relationships = []
        associations = self.association_entities()

        for assoc_name, (first, second) in associations.items():
            relationships.append(
                Relationship(
                    name=assoc_name,
                    left=first.parent_table,
                    right=second.parent_table,
                    cardinality=Cardinality.MANY_TO_MANY,
                    via=assoc_name,
                )
            )

        for fk in self.foreign_keys:
            if fk.child_table in associations and fk in associations[fk.child_table]:
                continue
            child = self.entities.get(fk.child_table)
            if child is None:
                continue

            cardinality = (
                Cardinality.ONE_TO_ONE
                if child.is_unique(fk.child_columns)
                else Cardinality.ONE_TO_MANY
            )
            mandatory = all(
                col in child.attributes and not child.attributes[col].nullable
                for col in fk.child_columns
            )
            relationships.append(
                Relationship(
                    name=fk.name or f"{fk.child_table}_{fk.parent_table}",
                    left=fk.parent_table,
                    right=fk.child_table,
                    cardinality=cardinality,
                    left_participation=Participation.OPTIONAL,
                    right_participation=(
                        Participation.MANDATORY if mandatory else Participation.OPTIONAL
                    ),
                )
            )

        return relationships

    def __repr__(self) -> str:
        return (
            f"SchemaModel(entities={len(self.entities)}, "
            f"fks={len(self.foreign_keys)}, relationships={len(self.relationships)})"
        )


def _as_list(value: Any) -> List[str]:
    """Normalize a column or list of columns to a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _attribute_from_dict(data: Any) -> Attribute:
    """Build an Attribute from a dict or a bare column name."""
    if isinstance(data, str):
        return Attribute(name=data)
    return Attribute(
        name=data["name"],
        dtype=data.get("dtype", ""),
        kind=data.get("kind", "simple"),
        nullable=data.get("nullable", True),
        default=data.get("default"),
        components=list(data.get("components") or []),
        expression=data.get("expression"),
        stored=data.get("stored", False),
        description=data.get("description"),
    )
