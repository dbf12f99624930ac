"""relcourse - lint relational database course chapters and schemas."""

__version__ = "0.1.0"

# Connectors
from relcourse.connectors import (
    BaseConnector,
    ConnectorFactory,
    CSVLoader,
    DBConnector,
)

# Core modules
from relcourse.core import (
    CourseLinter,
    Entity,
    ForeignKey,
    LintReport,
    MarkdownDocument,
    SchemaModel,
    check_integrity,
    course_reference_schema,
    normal_form,
    plan_delete,
    read_ddl,
    validate_schema,
)

# Utils
from relcourse.utils.config import Config, get_config, load_config

__all__ = [
    # Version
    "__version__",
    # Core
    "CourseLinter",
    "Entity",
    "ForeignKey",
    "LintReport",
    "MarkdownDocument",
    "SchemaModel",
    "check_integrity",
    "course_reference_schema",
    "normal_form",
    "plan_delete",
    "read_ddl",
    "validate_schema",
    # Connectors
    "BaseConnector",
    "ConnectorFactory",
    "CSVLoader",
    "DBConnector",
    # Config
    "Config",
    "get_config",
    "load_config",
]
