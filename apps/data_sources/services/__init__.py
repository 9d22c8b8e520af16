"""
apps.data_sources.services package.
"""
from .data_source_service import (  # noqa: F401
    DjangoColumnPersistence,
    create_data_source,
    get_data_source,
    get_table_columns,
    preview_edits,
    save_edits,
    update_table_columns,
)
