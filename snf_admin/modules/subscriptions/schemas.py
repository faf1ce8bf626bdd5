"""Schemas for subscription agency assignment."""

from typing import Literal

from pydantic import Field, field_validator

from snf_admin.shared.schemas.base import BaseSchema, UpstreamSchema

AssignmentFilter = Literal["unassigned", "assigned", "all"]


class AgencyRef(UpstreamSchema):
    id: int
    name: str = ""


class AssignableSubscription(UpstreamSchema):
    """Subscription fields needed to pick delivery agencies."""

    id: int
    payment_status: str = ""
    agency_id: int | None = None
    agency: AgencyRef | None = None
    start_date: str | None = None
    expiry_date: str | None = None

    @property
    def is_assigned(self) -> bool:
        return bool(self.agency_id or (self.agency and self.agency.id))


class AssignableSubscriptions(BaseSchema):
    subscriptions: list[AssignableSubscription]
    total_paid: int
    assigned_count: int
    unassigned_count: int


class BulkAssignAgencyRequest(BaseSchema):
    """agency_id null clears the assignment."""

    subscription_ids: list[int] = Field(..., min_length=1)
    agency_id: int | None = None

    @field_validator("subscription_ids")
    @classmethod
    def unique_ids(cls, v: list[int]) -> list[int]:
        if len(set(v)) != len(v):
            raise ValueError("Subscription ids must be unique")
        return v


class BulkAssignAgencyResponse(BaseSchema):
    updated_count: int
    agency_id: int | None
