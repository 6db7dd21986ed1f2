from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Issue(BaseModel):
    """One normalized issue, the unit Mystique receives inside a group."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    issue_name: str = Field(alias="issueName")
    suggestion_id: str = Field(alias="suggestionId")
    target_selector: str = Field(default="", alias="targetSelector")
    faulty_line: str = Field(default="", alias="faultyLine")
    issue_description: str = Field(default="", alias="issueDescription")
    url: str = ""


class AggregationGroup(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    aggregation_key: str = Field(alias="aggregationKey")
    url: str = ""
    issues_list: list[Issue] = Field(default_factory=list, alias="issuesList")

    def to_message_data(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MystiqueMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    site_id: str = Field(default="", alias="siteId")
    audit_id: str = Field(default="", alias="auditId")
    delivery_type: str = Field(default="aem_edge", alias="deliveryType")
    time: str = Field(default_factory=_utcnow_iso)
    url: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
