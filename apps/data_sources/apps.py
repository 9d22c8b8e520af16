"""
apps.data_sources.apps
"""
from django.apps import AppConfig


class DataSourcesConfig(AppConfig):
    name = "apps.data_sources"
    label = "data_sources"
    verbose_name = "Data Sources"
