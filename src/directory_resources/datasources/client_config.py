"""Identity of the principal the client authenticates as."""

from ..errors import GraphError, ResourceError
from ..resources.base import ResourceData
from .base import DataSource, DataSourceConfig


class ClientConfigQuery(DataSourceConfig):
    pass


class ClientConfigDataSource(DataSource[ClientConfigQuery]):
    type_name = "client_config"
    config_model = ClientConfigQuery

    def read(self, config: ClientConfigQuery) -> ResourceData:
        try:
            claims = self.graph.token_claims()
        except GraphError as e:
            raise ResourceError("Could not read claims of the authenticated principal") from e

        tenant_id = self.settings.tenant_id or claims.get("tid", "")
        client_id = self.settings.client_id or claims.get("appid") or claims.get("azp", "")
        object_id = claims.get("oid", "")
        return ResourceData(
            id=f"{tenant_id}-{client_id}-{object_id}",
            attributes={"tenant_id": tenant_id, "client_id": client_id, "object_id": object_id},
        )
