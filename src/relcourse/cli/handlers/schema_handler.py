"""Business logic for schema commands."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence

from relcourse.core.ddl.reader import DDLScript, read_ddl
from relcourse.core.docs.markdown import MarkdownDocument
from relcourse.core.lint.base import sql_blocks
from relcourse.core.schema import SchemaModel, validate_schema
from relcourse.core.schema.normalization import (
    attribute_closure,
    decompose_bcnf,
    minimal_cover,
    normal_form,
    parse_fd,
    parse_mvd,
    synthesize_3nf,
)
from relcourse.utils.config import Config
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)


class SchemaHandler:
    """Handler for schema operations.

    Keeps the schema commands thin: file handling and algorithm calls live
    here.

    Example:
        >>> handler = SchemaHandler(config)
        >>> schema = handler.extract("chapters/03-keys.md")
        >>> result = handler.validate(schema)
    """

    def __init__(self, config: Config):
        """Initialize handler.

        Args:
            config: Configuration instance
        """
        self.config = config

    def extract(self, path: str | Path) -> SchemaModel:
        """Build a schema model from the DDL in a .sql or .md file.

        For Markdown, every SQL block not marked ``skip`` or ``invalid`` is
        read in document order.

        Args:
            path: SQL script or Markdown chapter

        Returns:
            SchemaModel
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if path.suffix.lower() in (".md", ".markdown"):
            document = MarkdownDocument.from_file(
                path, directive_prefix=self.config.get("lint.directive_prefix", "relcourse")
            )
            script = DDLScript()
            for block, _dialect in sql_blocks(document, self.config.get("lint.sql.languages")):
                if block.has_flag("skip") or block.has_flag("invalid"):
                    continue
                script.statements.extend(
                    read_ddl(block.content, start_line=block.content_line).statements
                )
        else:
            script = read_ddl(path.read_text(encoding="utf-8"))

        schema = script.to_schema_model(name=path.stem)
        schema.relationships = schema.infer_relationships()
        logger.info(
            f"Extracted {len(schema.entities)} tables and "
            f"{len(schema.foreign_keys)} foreign keys from {path}"
        )
        return schema

    def validate(self, schema: SchemaModel) -> Dict[str, List[str]]:
        """Validate schema and return errors/warnings."""
        return validate_schema(schema)

    def normalize(
        self,
        attributes: Sequence[str],
        fd_texts: Sequence[str],
        mvd_texts: Sequence[str] = (),
        multivalued: Sequence[str] = (),
    ) -> Dict:
        """Analyse a relation given as attributes and dependencies.

        Args:
            attributes: Relation attributes
            fd_texts: Functional dependencies such as "a, b -> c"
            mvd_texts: Multivalued dependencies such as "a ->> b"
            multivalued: Attributes holding repeating groups

        Returns:
            Dict with normal form, keys, violations, minimal cover and
            BCNF / 3NF decompositions
        """
        attributes = list(dict.fromkeys(attributes))
        fds = [parse_fd(text) for text in fd_texts]
        mvds = [parse_mvd(text) for text in mvd_texts]

        used = set()
        for dep in [*fds, *mvds]:
            used |= dep.lhs | dep.rhs
        unknown = sorted(used - set(attributes))
        if unknown:
            raise ValueError(f"Dependencies use unknown attribute(s): {', '.join(unknown)}")

        result = normal_form(attributes, fds, mvds, multivalued_attributes=multivalued)
        data = result.to_dict()
        data["minimal_cover"] = [str(fd) for fd in minimal_cover(fds)]
        data["closures"] = {
            ", ".join(sorted(fd.lhs)): sorted(attribute_closure(fd.lhs, fds)) for fd in fds
        }
        data["bcnf_decomposition"] = [sorted(r) for r in decompose_bcnf(attributes, fds)]
        data["3nf_synthesis"] = [sorted(r) for r in synthesize_3nf(attributes, fds)]
        return data
