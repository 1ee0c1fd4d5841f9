"""Read-only data sources keyed by their configuration type name."""

from .application import ApplicationDataSource, ApplicationLookup
from .base import DataSource, DataSourceConfig
from .client_config import ClientConfigDataSource, ClientConfigQuery
from .domains import DomainsDataSource, DomainsFilter
from .users import UsersDataSource, UsersLookup, users_id

DATA_SOURCE_TYPES: dict[str, type[DataSource]] = {
    cls.type_name: cls
    for cls in (
        ApplicationDataSource,
        ClientConfigDataSource,
        DomainsDataSource,
        UsersDataSource,
    )
}

__all__ = [
    "DATA_SOURCE_TYPES",
    "ApplicationDataSource",
    "ApplicationLookup",
    "ClientConfigDataSource",
    "ClientConfigQuery",
    "DataSource",
    "DataSourceConfig",
    "DomainsDataSource",
    "DomainsFilter",
    "UsersDataSource",
    "UsersLookup",
    "users_id",
]
