from enum import StrEnum

from pydantic import Field

from snf_admin.shared.schemas.base import BaseSchema


class UserRole(StrEnum):
    """Roles issued by the commerce backend."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    AGENCY = "AGENCY"
    VENDOR = "VENDOR"
    DEPOT_ADMIN = "DEPOT_ADMIN"
    MEMBER = "MEMBER"


class CurrentUser(BaseSchema):
    """
    Caller identity read from the backend-issued JWT.

    Role names vary between deployments ("ADMIN", "SUPER_ADMIN", "DepotAdmin"...),
    so role checks match on substrings of the upper-cased role.
    """

    id: int | None = None
    role: str = ""
    token: str = Field("", exclude=True, repr=False)
    agency_id: int | None = None
    vendor_id: int | None = None
    depot_id: int | None = None

    @property
    def normalized_role(self) -> str:
        return self.role.upper()

    @property
    def is_admin(self) -> bool:
        return "ADMIN" in self.normalized_role

    @property
    def is_agency(self) -> bool:
        return "AGENCY" in self.normalized_role

    @property
    def is_vendor(self) -> bool:
        return "VENDOR" in self.normalized_role

    @property
    def is_depot(self) -> bool:
        return "DEPOT" in self.normalized_role
