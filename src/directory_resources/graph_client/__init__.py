"""Directory (Graph) API client."""

from .client import (
    ApplicationsClient,
    DomainsClient,
    GraphClient,
    GroupsClient,
    UsersClient,
    odata_quote,
)
from .models import (
    Application,
    ApplicationApi,
    ApplicationWeb,
    AppRole,
    Domain,
    Group,
    KeyCredential,
    PasswordCredential,
    PermissionScope,
    User,
)

__all__ = [
    "ApplicationsClient",
    "DomainsClient",
    "GraphClient",
    "GroupsClient",
    "UsersClient",
    "odata_quote",
    "Application",
    "ApplicationApi",
    "ApplicationWeb",
    "AppRole",
    "Domain",
    "Group",
    "KeyCredential",
    "PasswordCredential",
    "PermissionScope",
    "User",
]
