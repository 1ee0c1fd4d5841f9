"""Look up a single application registration."""

from pydantic import model_validator

from ..errors import ConfigValidationError, GraphError, NotFoundError, ResourceError
from ..graph_client import odata_quote
from ..graph_client.models import Application
from ..resources.application import flatten_application
from ..resources.base import ResourceData
from .base import DataSource, DataSourceConfig


class ApplicationLookup(DataSourceConfig):
    object_id: str | None = None
    application_id: str | None = None
    display_name: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "ApplicationLookup":
        given = [v for v in (self.object_id, self.application_id, self.display_name) if v]
        if len(given) != 1:
            raise ValueError(
                "exactly one of object_id, application_id or display_name must be specified"
            )
        return self


class ApplicationDataSource(DataSource[ApplicationLookup]):
    type_name = "application"
    config_model = ApplicationLookup

    def _by_filter(self, field_name: str, attribute: str, model_field: str, value: str) -> Application:
        query = f"{field_name} eq {odata_quote(value)}"
        try:
            result = self.graph.applications.list(query)
        except GraphError as e:
            raise ResourceError(f"Listing applications for filter {query!r}") from e

        if not result:
            raise ResourceError(f"No applications found matching filter: {query!r}", attribute=attribute)
        if len(result) > 1:
            raise ResourceError(
                f"Found multiple applications matching filter: {query!r}", attribute=attribute
            )

        app = result[0]
        actual = getattr(app, model_field)
        if actual != value:
            raise ResourceError(
                f"Bad API response: {attribute} does not match ({actual!r} != {value!r}) "
                f"for applications matching filter: {query!r}"
            )
        return app

    def read(self, config: ApplicationLookup) -> ResourceData:
        if config.object_id:
            try:
                app = self.graph.applications.get(config.object_id)
            except NotFoundError:
                raise ResourceError(
                    f"Application with object ID {config.object_id!r} was not found",
                    attribute="object_id",
                ) from None
            except GraphError as e:
                raise ResourceError(
                    f"Retrieving Application with object ID {config.object_id!r}",
                    attribute="object_id",
                ) from e
        elif config.application_id:
            app = self._by_filter("appId", "application_id", "app_id", config.application_id)
        elif config.display_name:
            app = self._by_filter("displayName", "display_name", "display_name", config.display_name)
        else:
            raise ConfigValidationError(
                "One of object_id, application_id or display_name must be specified"
            )

        if not app.id:
            raise ResourceError("Bad API response: object ID returned for application is nil")

        attributes = flatten_application(app)
        try:
            attributes["owners"] = sorted(self.graph.applications.list_owners(app.id))
        except GraphError as e:
            raise ResourceError(
                f"Could not retrieve owners for application with object ID {app.id!r}",
                attribute="owners",
            ) from e
        return ResourceData(id=app.id, attributes=attributes)
