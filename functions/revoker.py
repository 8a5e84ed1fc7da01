#!/usr/bin/env python3
"""External Grant Revoker.

Removes members from disallowed domains that were granted a role on a
project inside one of the configured folders. This module can be run both
as a Google Cloud Function triggered by Pub/Sub and locally for testing.
The main business logic is separated from the function entry point for
better testability.
"""

import argparse
import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from ancestry import in_scope
from denylist import select_disallowed
from errors import DecodeError, DependencyError
from finding import Finding, decode_finding
from policy import Policy, remove_members
from resource_clients import (
    GCPResourceClients,
    ResourceClientInterface,
    ResourceManagerStub,
)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Set up logging configuration.

    Args:
        level: The logging level to use. Defaults to "INFO".

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(__name__)
    if not logger.handlers:  # Avoid duplicate handlers
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, level.upper()))
    return logger


log_level = "DEBUG" if os.environ.get("DEBUG", "false").lower() == "true" else "INFO"
logger = setup_logging(log_level)


def _parse_list(value: str | None) -> list[str]:
    """Parse a JSON list, falling back to a comma separated string."""
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(parsed, list):
        return [str(item) for item in parsed]
    return [str(parsed)]


def _as_list(name: str, value: Any) -> list[str]:
    """Coerce a configured value to a list of strings.

    A single string or number is one item, never a sequence of characters.
    """
    if value is None:
        return []
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return [str(value)]
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value]
    raise ValueError(f"{name} must be a list, got {type(value).__name__}")


@dataclass
class RemediationConfig:
    """Configuration for the revoker."""

    folder_ids: list[str] = field(default_factory=list)
    disallowed_domains: list[str] = field(default_factory=list)
    dry_run: bool = False

    def __post_init__(self) -> None:
        """Normalize ids and domains read from YAML or JSON to string lists."""
        self.folder_ids = _as_list("folder_ids", self.folder_ids)
        self.disallowed_domains = _as_list(
            "disallowed_domains", self.disallowed_domains
        )

    @property
    def has_scope(self) -> bool:
        """Whether at least one folder is configured."""
        return any(self.folder_ids)

    @classmethod
    def from_env(cls) -> "RemediationConfig":
        """Create config from environment variables."""
        dry_run_str = os.environ.get("DRY_RUN", "false").lower()
        dry_run = dry_run_str in ("true", "1", "yes", "on")

        return cls(
            folder_ids=_parse_list(os.environ.get("FOLDER_IDS")),
            disallowed_domains=_parse_list(os.environ.get("DISALLOWED_DOMAINS")),
            dry_run=dry_run,
        )

    @classmethod
    def from_dict(cls, config_dict: dict) -> "RemediationConfig":
        """Create config from dictionary."""
        return cls(**config_dict)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RemediationConfig":
        """Create config from a YAML file.

        Args:
            path: Path to a file with ``folder_ids``, ``disallowed_domains``
                and optionally ``dry_run`` keys.

        Returns:
            RemediationConfig: The loaded configuration.
        """
        with Path(path).open() as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ValueError(f"Configuration in {path} must be a mapping")
        return cls.from_dict(config)


class Outcome(str, Enum):
    """How a remediation ended."""

    REMEDIATED = "remediated"
    DRY_RUN = "dry_run"
    OUT_OF_SCOPE = "out_of_scope"
    NOTHING_TO_REVOKE = "nothing_to_revoke"
    NO_CHANGE = "no_change"


class RemediationResult:
    """Result of processing one finding.

    Every result is a success; failures are raised as exceptions. Only the
    REMEDIATED outcome means the policy was updated.
    """

    def __init__(
        self,
        finding: Finding,
        outcome: Outcome,
        removed_members: list[str] | None = None,
        policy: Policy | None = None,
    ):
        """Initialize the RemediationResult."""
        self.finding = finding
        self.outcome = outcome
        self.removed_members = removed_members or []
        self.policy = policy
        self.timestamp = datetime.now(timezone.utc).isoformat()

    @property
    def updated(self) -> bool:
        """Whether the policy was replaced."""
        return self.outcome is Outcome.REMEDIATED

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "outcome": self.outcome.value,
            "resource": self.finding.affected_resource_name,
            "rule_name": self.finding.rule_name,
            "removed_members": list(self.removed_members),
            "timestamp": self.timestamp,
        }


class ExternalGrantRevoker:
    """Main business logic for revoking external grants.

    Decodes a finding, checks the affected resource is inside one of the
    configured folders, selects the finding's members from disallowed
    domains and removes them from the resource's IAM policy.
    """

    def __init__(
        self, config: RemediationConfig, resource_clients: ResourceClientInterface
    ):
        """Initialize the ExternalGrantRevoker."""
        self.config = config
        self.resource_clients = resource_clients
        self.logger = logger

    def process_message(self, payload: bytes | str | None) -> RemediationResult:
        """Decode a finding payload and remediate it.

        Args:
            payload: The raw finding JSON.

        Returns:
            RemediationResult: The outcome of the remediation.

        Raises:
            DecodeError: If the payload is not a valid finding.
            DependencyError: If a resource manager call fails.
        """
        finding = decode_finding(payload)
        return self.revoke(finding)

    def revoke(self, finding: Finding) -> RemediationResult:
        """Remediate a decoded finding.

        Args:
            finding: The finding to remediate.

        Returns:
            RemediationResult: The outcome of the remediation.

        Raises:
            DependencyError: If a resource manager call fails.
        """
        resource_name = finding.affected_resource_name
        self.logger.info(
            f"Processing finding {finding.rule_name}/{finding.sub_rule_name} "
            f"for {resource_name}"
        )
        self.logger.debug(f"Finding: {json.dumps(finding.to_dict())}")

        if not self.config.has_scope:
            self.logger.info("No folders configured, skipping remediation")
            return RemediationResult(finding, Outcome.OUT_OF_SCOPE)

        ancestry = self.resource_clients.get_ancestry(resource_name)
        self.logger.debug(
            f"Ancestry of {resource_name}: {[a.resource_name for a in ancestry]}"
        )
        if not in_scope(ancestry, self.config.folder_ids):
            self.logger.info(f"{resource_name} is not in a configured folder")
            return RemediationResult(finding, Outcome.OUT_OF_SCOPE)

        disallowed = select_disallowed(
            finding.external_members, self.config.disallowed_domains
        )
        if not disallowed:
            self.logger.info("No external members from disallowed domains")
            return RemediationResult(finding, Outcome.NOTHING_TO_REVOKE)

        policy = self.resource_clients.get_policy(resource_name)
        new_policy = remove_members(policy, disallowed)
        if new_policy is None:
            self.logger.info(
                f"Members {disallowed} are not in the policy of {resource_name}"
            )
            return RemediationResult(finding, Outcome.NO_CHANGE, disallowed)

        if self.config.dry_run:
            self.logger.info(f"DRY RUN: Would remove {disallowed} from {resource_name}")
            return RemediationResult(finding, Outcome.DRY_RUN, disallowed, new_policy)

        saved = self.resource_clients.set_policy(resource_name, new_policy)
        self.logger.info(f"Removed {disallowed} from {resource_name}")
        return RemediationResult(finding, Outcome.REMEDIATED, disallowed, saved)


def _event_payload(event: dict[str, Any]) -> bytes:
    """Extract the finding payload from a Pub/Sub background event."""
    data = event.get("data") or ""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError("failed to unmarshal") from e


# Cloud Function entry point
def revoke_external_grants(event: dict[str, Any], _context: Any) -> dict[str, Any]:
    """Google Cloud Function entry point - thin wrapper around business logic.

    The finding is decoded before any client is built, so invalid findings
    are reported and dropped even when credentials are unavailable. Resource
    manager failures are raised so Pub/Sub redelivers the message.

    Background functions ignore the return value; the status dict is only
    logged and checked by tests.

    Args:
        event: The Pub/Sub event to process.
        _context: The event metadata (unused).

    Returns:
        Dict[str, Any]: The result of the event processing.
    """
    try:
        finding = decode_finding(_event_payload(event))
    except DecodeError as e:
        logger.error(str(e))
        return {"statusCode": 400, "body": str(e)}

    try:
        config = RemediationConfig.from_env()
        revoker = ExternalGrantRevoker(config, GCPResourceClients())
        result = revoker.revoke(finding)
    except DependencyError as e:
        logger.error(f"Remediation failed: {e!s}", exc_info=True)
        raise

    logger.info(f"Remediation complete: {result.to_dict()}")
    return {"statusCode": 200, "body": json.dumps(result.to_dict())}


# Local execution support
def create_sample_message(
    member: str = "user:tom@gmail.com",
    resource_name: str = "//cloudresourcemanager.googleapis.com/projects/test-project",
) -> str:
    """Create a sample finding payload for testing.

    Returns:
        str: A sample finding JSON document.
    """
    return json.dumps(
        {
            "insertId": "eppsoda4",
            "jsonPayload": {
                "detectionCategory": {
                    "subRuleName": "external_member_added_to_policy",
                    "ruleName": "iam_anomalous_grant",
                },
                "affectedResources": [{"gcpResourceName": resource_name}],
                "properties": {
                    "project_id": "test-project",
                    "externalMembers": [member],
                },
            },
            "logName": "projects/test-project/logs/"
            "threatdetection.googleapis.com%2Fdetection",
        }
    )


def main() -> Any:
    """Run function for local execution.

    This function is used to test the revoker locally. It can be run with
    the following command:

    python revoker.py --event finding.json --config config.yaml
    """
    parser = argparse.ArgumentParser(description="External Grant Revoker")
    parser.add_argument("--config", help="Configuration file (YAML)")
    parser.add_argument("--event", help="Finding file (JSON)")
    parser.add_argument("--dry-run", action="store_true", help="Dry run mode")
    parser.add_argument("--log-level", default="INFO", help="Log level")

    args = parser.parse_args()

    local_logger = setup_logging(args.log_level)

    if args.config:
        config = RemediationConfig.from_yaml(args.config)
    else:
        config = RemediationConfig.from_env()
    config.dry_run = config.dry_run or args.dry_run

    if args.event:
        payload = Path(args.event).read_bytes()
    else:
        local_logger.info("No event file provided, using sample finding")
        payload = create_sample_message().encode("utf-8")

    # Use real clients if credentials are available, otherwise use the stub
    resource_clients: ResourceClientInterface
    credentials_configured = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if not config.dry_run and credentials_configured:
        resource_clients = GCPResourceClients()
        local_logger.info("Using real resource manager client")
    else:
        local_logger.info("Using stub resource manager for local testing")
        resource_clients = ResourceManagerStub.from_paths(
            ["project/test-project"]
            + [f"folder/{folder_id}" for folder_id in config.folder_ids if folder_id]
            + ["organization/test-organization"],
            members=["user:test@test.com", "user:tom@gmail.com"],
        )

    revoker = ExternalGrantRevoker(config, resource_clients)
    result = revoker.process_message(payload)

    local_logger.info(f"Processing complete: {result.to_dict()}")
    return result.to_dict()


if __name__ == "__main__":
    main()
