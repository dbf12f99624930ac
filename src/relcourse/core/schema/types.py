"""Data dictionary types: entities, attributes, keys and relationships."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional


class AttributeKind(str, Enum):
    """How an attribute decomposes."""

    SIMPLE = "simple"
    COMPOSITE = "composite"  # Decomposable, e.g. address -> street, city
    MULTI_VALUED = "multi_valued"  # Needs its own owned table
    DERIVED = "derived"  # Computed, optionally cached


class Cardinality(str, Enum):
    """Maximum number of related instances between two entities."""

    ONE_TO_ONE = "1:1"
    ONE_TO_MANY = "1:N"
    MANY_TO_MANY = "M:N"


class Participation(str, Enum):
    """Whether membership in a relationship is total or partial."""

    MANDATORY = "mandatory"
    OPTIONAL = "optional"


class KeyKind(str, Enum):
    """Role of a key among an entity's candidate keys."""

    CANDIDATE = "candidate"
    PRIMARY = "primary"
    ALTERNATE = "alternate"


class ReferentialAction(str, Enum):
    """Action taken on child rows when a referenced parent row changes."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"

    @classmethod
    def parse(cls, value: Optional[str]) -> ReferentialAction:
        """Parse an action from SQL text (case and whitespace insensitive).

        Args:
            value: Action text such as "cascade" or "SET  NULL". None means
                the SQL default, NO ACTION.

        Returns:
            ReferentialAction

        Raises:
            ValueError: If the text is not a referential action
        """
        if value is None:
            return cls.NO_ACTION
        if isinstance(value, cls):
            return value
        normalized = " ".join(str(value).replace("_", " ").split()).upper()
        for action in cls:
            if action.value == normalized:
                return action
        raise ValueError(f"Unknown referential action: {value!r}")

    @property
    def blocks_delete(self) -> bool:
        """True if the action refuses to delete referenced parents."""
        return self in (ReferentialAction.RESTRICT, ReferentialAction.NO_ACTION)


@dataclass
class Attribute:
    """A column-level property of an entity."""

    name: str
    dtype: str = ""
    kind: AttributeKind = AttributeKind.SIMPLE
    nullable: bool = True
    default: Optional[str] = None
    components: List[str] = field(default_factory=list)  # composite parts
    expression: Optional[str] = None  # derived formula
    stored: bool = False  # derived value cached in the table
    description: Optional[str] = None

    def __post_init__(self):
        self.kind = AttributeKind(self.kind)

    def __repr__(self) -> str:
        null = "NULL" if self.nullable else "NOT NULL"
        return f"Attribute({self.name} {self.dtype or '?'} {null}, {self.kind.value})"


@dataclass
class Key:
    """A minimal attribute set uniquely identifying an entity instance."""

    columns: List[str]
    kind: KeyKind = KeyKind.CANDIDATE
    name: Optional[str] = None

    def __post_init__(self):
        self.kind = KeyKind(self.kind)
        self.columns = list(self.columns)

    @property
    def is_composite(self) -> bool:
        """True for multi-column keys."""
        return len(self.columns) > 1

    def matches(self, columns: Iterable[str]) -> bool:
        """Check whether the key covers exactly the given columns (any order)."""
        return set(self.columns) == set(columns)

    def __repr__(self) -> str:
        return f"Key({self.kind.value}: {', '.join(self.columns)})"


@dataclass
class ForeignKey:
    """Foreign key from child columns to parent key columns."""

    child_table: str
    child_columns: List[str]
    parent_table: str
    parent_columns: List[str]
    on_delete: ReferentialAction = ReferentialAction.NO_ACTION
    on_update: ReferentialAction = ReferentialAction.NO_ACTION
    name: Optional[str] = None
    coverage: Optional[float] = None  # 0.0-1.0, measured on sample rows

    def __post_init__(self):
        self.child_columns = list(self.child_columns)
        self.parent_columns = list(self.parent_columns)
        self.on_delete = ReferentialAction.parse(self.on_delete)
        self.on_update = ReferentialAction.parse(self.on_update)

    @property
    def child_column(self) -> str:
        """First child column (the whole key for single-column FKs)."""
        return self.child_columns[0]

    @property
    def parent_column(self) -> str:
        """First parent column (the whole key for single-column FKs)."""
        return self.parent_columns[0]

    @property
    def is_self_referencing(self) -> bool:
        return self.child_table == self.parent_table

    def describe(self) -> str:
        """Human-readable `child(cols) -> parent(cols)` form."""
        return (
            f"{self.child_table}({', '.join(self.child_columns)}) -> "
            f"{self.parent_table}({', '.join(self.parent_columns)})"
        )

    def __repr__(self) -> str:
        text = f"FK({self.describe()}, on_delete={self.on_delete.value}"
        if self.coverage is not None:
            text += f", coverage={self.coverage:.2f}"
        return text + ")"


@dataclass
class Entity:
    """A table-level concept with attributes and keys."""

    name: str
    attributes: Dict[str, Attribute] = field(default_factory=dict)
    primary_key: List[str] = field(default_factory=list)
    alternate_keys: List[List[str]] = field(default_factory=list)
    description: Optional[str] = None

    @classmethod
    def build(
        cls,
        name: str,
        attributes: Iterable[Attribute],
        primary_key: Iterable[str] = (),
        alternate_keys: Iterable[Iterable[str]] = (),
        description: Optional[str] = None,
    ) -> Entity:
        """Create an entity from an attribute list.

        Example:
            >>> Entity.build(
            ...     "customers",
            ...     [Attribute("id", "INT", nullable=False), Attribute("email", "TEXT")],
            ...     primary_key=["id"],
            ...     alternate_keys=[["email"]],
            ... )
        """
        return cls(
            name=name,
            attributes={attr.name: attr for attr in attributes},
            primary_key=list(primary_key),
            alternate_keys=[list(key) for key in alternate_keys],
            description=description,
        )

    @property
    def columns(self) -> List[str]:
        """Attribute names in declaration order."""
        return list(self.attributes)

    def keys(self) -> List[Key]:
        """Primary key followed by alternate keys."""
        keys = []
        if self.primary_key:
            keys.append(Key(self.primary_key, KeyKind.PRIMARY))
        keys.extend(Key(cols, KeyKind.ALTERNATE) for cols in self.alternate_keys)
        return keys

    def is_key(self, columns: Iterable[str]) -> bool:
        """Check whether the columns form the primary or an alternate key."""
        columns = list(columns)
        return any(key.matches(columns) for key in self.keys())

    def is_unique(self, columns: Iterable[str]) -> bool:
        """Check whether the columns contain a declared key (superkey)."""
        column_set = set(columns)
        return any(set(key.columns) <= column_set for key in self.keys())

    def __repr__(self) -> str:
        pk = ", ".join(self.primary_key) or "-"
        return f"Entity({self.name}, attributes={len(self.attributes)}, pk=({pk}))"


@dataclass
class Relationship:
    """A named association between two (or one, self-referencing) entities."""

    name: str
    left: str
    right: str
    cardinality: Cardinality = Cardinality.ONE_TO_MANY
    left_participation: Participation = Participation.OPTIONAL
    right_participation: Participation = Participation.OPTIONAL
    via: Optional[str] = None  # association entity realizing an M:N

    def __post_init__(self):
        self.cardinality = Cardinality(self.cardinality)
        self.left_participation = Participation(self.left_participation)
        self.right_participation = Participation(self.right_participation)

    @property
    def is_self_referencing(self) -> bool:
        return self.left == self.right

    def __repr__(self) -> str:
        via = f" via {self.via}" if self.via else ""
        return (
            f"Relationship({self.name}: {self.left} {self.cardinality.value} "
            f"{self.right}{via})"
        )
