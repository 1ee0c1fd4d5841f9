"""List the tenant's domains."""

from pydantic import model_validator

from ..errors import GraphError, ResourceError
from ..resources.base import ResourceData
from .base import DataSource, DataSourceConfig


class DomainsFilter(DataSourceConfig):
    include_unverified: bool = False
    only_default: bool = False
    only_initial: bool = False

    @model_validator(mode="after")
    def _check_conflicts(self) -> "DomainsFilter":
        # Default and initial domains are always verified
        if self.only_default and self.only_initial:
            raise ValueError("only_default conflicts with only_initial")
        if self.include_unverified and (self.only_default or self.only_initial):
            raise ValueError("include_unverified conflicts with only_default and only_initial")
        return self


class DomainsDataSource(DataSource[DomainsFilter]):
    type_name = "domains"
    config_model = DomainsFilter

    def read(self, config: DomainsFilter) -> ResourceData:
        try:
            result = self.graph.domains.list()
        except GraphError as e:
            raise ResourceError("Could not list domains") from e

        domains = []
        for domain in result:
            if config.only_default and not domain.is_default:
                continue
            if config.only_initial and not domain.is_initial:
                continue
            if not config.include_unverified and not domain.is_verified:
                continue
            domains.append(
                {
                    "domain_name": domain.id,
                    "authentication_type": domain.authentication_type or "",
                    "is_default": bool(domain.is_default),
                    "is_initial": bool(domain.is_initial),
                    "is_verified": bool(domain.is_verified),
                }
            )

        if not domains:
            raise ResourceError("No domains found for the provided filters")

        return ResourceData(id=f"domains-{self.tenant_id()}", attributes={"domains": domains})
