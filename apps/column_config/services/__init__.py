"""
apps.column_config.services package.
"""
from .column_model import (  # noqa: F401
    Column,
    BaseOptions,
    DataSourceInfo,
    FieldType,
    InvalidOptionValueError,
    InvalidPathError,
    with_option,
)
from .column_store import ColumnNotFoundError, ColumnStore, DuplicateColumnError  # noqa: F401
from .diff_engine import AlignmentError, DiffEngine  # noqa: F401
from .edit_session import EditSession, SaveFailedError, SaveResult  # noqa: F401
from .patch_builder import PatchBuilder  # noqa: F401
