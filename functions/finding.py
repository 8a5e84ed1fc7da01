#!/usr/bin/env python3
"""Security finding schema for external member grants.

Findings arrive as JSON log entries emitted by the threat detector, e.g.:

    {
        "insertId": "eppsoda4",
        "jsonPayload": {
            "detectionCategory": {
                "subRuleName": "external_member_added_to_policy",
                "ruleName": "iam_anomalous_grant"
            },
            "affectedResources": [
                {"gcpResourceName": "//cloudresourcemanager.googleapis.com/projects/p-1"}
            ],
            "properties": {
                "project_id": "p-1",
                "externalMembers": ["user:tom@gmail.com"]
            }
        },
        "logName": "projects/p-1/logs/threatdetection.googleapis.com%2Fdetection"
    }
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from errors import DecodeError


UNMARSHAL_FAILURE = "failed to unmarshal"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Finding:
    """An external member grant reported by the detector."""

    rule_name: str
    sub_rule_name: str
    affected_resource_name: str
    external_members: tuple[str, ...]
    project_id: str = ""
    insert_id: str | None = None
    log_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert finding to dictionary."""
        return {
            "rule_name": self.rule_name,
            "sub_rule_name": self.sub_rule_name,
            "affected_resource_name": self.affected_resource_name,
            "external_members": list(self.external_members),
            "project_id": self.project_id,
            "insert_id": self.insert_id,
            "log_name": self.log_name,
        }


def project_id_from_resource_name(resource_name: str) -> str:
    """Extract the project id from a full resource name.

    Args:
        resource_name: Name such as
            ``//cloudresourcemanager.googleapis.com/projects/my-project``.

    Returns:
        str: The segment following ``projects/``, or "" if there is none.
    """
    parts = resource_name.split("/")
    for index, part in enumerate(parts[:-1]):
        if part == "projects" and parts[index + 1]:
            return parts[index + 1]
    return ""


def _require_str(container: Any, key: str) -> str:
    if not isinstance(container, dict):
        raise DecodeError(UNMARSHAL_FAILURE)
    value = container.get(key)
    if not isinstance(value, str):
        raise DecodeError(UNMARSHAL_FAILURE)
    return value


def decode_finding(payload: bytes | str | None) -> Finding:
    """Parse a raw event payload into a Finding.

    Args:
        payload: The raw JSON payload of the event.

    Returns:
        Finding: The decoded finding.

    Raises:
        DecodeError: If the payload is empty, not JSON, or lacks a required
            field.
    """
    if not payload:
        raise DecodeError(UNMARSHAL_FAILURE)

    try:
        document = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug(f"Finding payload is not valid JSON: {e!s}")
        raise DecodeError(UNMARSHAL_FAILURE) from e

    if not isinstance(document, dict):
        raise DecodeError(UNMARSHAL_FAILURE)

    json_payload = document.get("jsonPayload")
    if not isinstance(json_payload, dict):
        raise DecodeError(UNMARSHAL_FAILURE)

    category = json_payload.get("detectionCategory")
    rule_name = _require_str(category, "ruleName")
    sub_rule_name = _require_str(category, "subRuleName")

    resources = json_payload.get("affectedResources")
    if not isinstance(resources, list) or not resources:
        raise DecodeError(UNMARSHAL_FAILURE)
    resource_name = _require_str(resources[0], "gcpResourceName")

    properties = json_payload.get("properties")
    if not isinstance(properties, dict):
        raise DecodeError(UNMARSHAL_FAILURE)
    members = properties.get("externalMembers")
    if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
        raise DecodeError(UNMARSHAL_FAILURE)

    project_id = properties.get("project_id")
    if not isinstance(project_id, str) or not project_id:
        project_id = project_id_from_resource_name(resource_name)

    insert_id = document.get("insertId")
    log_name = document.get("logName")

    return Finding(
        rule_name=rule_name,
        sub_rule_name=sub_rule_name,
        affected_resource_name=resource_name,
        external_members=tuple(members),
        project_id=project_id,
        insert_id=insert_id if isinstance(insert_id, str) else None,
        log_name=log_name if isinstance(log_name, str) else None,
    )
