"""
apps.column_config.apps
"""
from django.apps import AppConfig


class ColumnConfigConfig(AppConfig):
    name = "apps.column_config"
    label = "column_config"
    verbose_name = "Column Config"
