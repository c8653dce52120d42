"""
Acting identity and tenant scope.
"""

from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

from survey_service.shared.exceptions import PermissionDeniedError

# Wildcard scope values shared with the auth service
ALL_APPS = "all"
ALL_ORGS = "all"


class Tenant(BaseModel):
    """The (org, app) pair scoping all data and authorization decisions."""

    model_config = ConfigDict(frozen=True)

    org_id: str
    app_id: str


class Identity(BaseModel):
    """Identity of the caller, built from bearer token claims."""

    model_config = ConfigDict(frozen=True)

    account_id: str = Field(..., description="Account ID (token subject)")
    org_id: str
    app_id: str
    external_ids: Mapping[str, str] = Field(default_factory=dict)
    permissions: frozenset[str] = Field(default_factory=frozenset)
    system: bool = False

    @property
    def tenant(self) -> Tenant:
        return Tenant(org_id=self.org_id, app_id=self.app_id)

    def external_id(self, field_name: str | None) -> str:
        """Return the external ID stored under ``field_name`` or an empty string."""
        if not field_name:
            return ""
        return self.external_ids.get(field_name, "") or ""

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def can_access(self, app_id: str, org_id: str, system: bool) -> None:
        """Check that this identity may manage data in the given scope.

        Raises:
            PermissionDeniedError: If the scope is outside the identity's claims.
        """
        details = {"app_id": app_id, "org_id": org_id, "system": system}
        if system and not self.system:
            raise PermissionDeniedError("System claim required", details=details)
        if self.system:
            return
        if org_id != self.org_id:
            raise PermissionDeniedError("Organization not accessible", details=details)
        if app_id not in (self.app_id, ALL_APPS):
            raise PermissionDeniedError("Application not accessible", details=details)
