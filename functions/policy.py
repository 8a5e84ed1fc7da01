#!/usr/bin/env python3
"""IAM policy model and member removal.

Policies are exchanged with the resource manager as JSON documents:

    {
        "version": 1,
        "etag": "BwWKmjvelug=",
        "bindings": [
            {"role": "roles/editor", "members": ["user:tom@gmail.com"]}
        ]
    }

Only binding members are ever changed here. Everything else in the
document (etag, version, audit configs, binding conditions) is carried
through untouched.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Binding:
    """A role granted to a list of members."""

    role: str
    members: list[str] = field(default_factory=list)
    condition: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, binding: dict[str, Any]) -> "Binding":
        """Create a Binding from its API representation."""
        return cls(
            role=binding.get("role", ""),
            members=list(binding.get("members", []) or []),
            condition=binding.get("condition"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert binding to its API representation."""
        binding: dict[str, Any] = {"role": self.role, "members": list(self.members)}
        if self.condition is not None:
            binding["condition"] = self.condition
        return binding


@dataclass
class Policy:
    """Access control state of a resource."""

    bindings: list[Binding] = field(default_factory=list)
    etag: str | None = None
    version: int | None = None
    # Any other top-level policy fields, e.g. auditConfigs
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, policy: dict[str, Any] | None) -> "Policy":
        """Create a Policy from its API representation.

        Args:
            policy: Policy document as returned by ``getIamPolicy``.

        Returns:
            Policy: The parsed policy.
        """
        policy = dict(policy or {})
        bindings = [Binding.from_dict(b) for b in policy.pop("bindings", []) or []]
        etag = policy.pop("etag", None)
        version = policy.pop("version", None)
        return cls(bindings=bindings, etag=etag, version=version, extra=policy)

    def to_dict(self) -> dict[str, Any]:
        """Convert policy to its API representation."""
        policy: dict[str, Any] = dict(self.extra)
        policy["bindings"] = [b.to_dict() for b in self.bindings]
        if self.etag is not None:
            policy["etag"] = self.etag
        if self.version is not None:
            policy["version"] = self.version
        return policy


def remove_members(policy: Policy, principals: Iterable[str]) -> Policy | None:
    """Remove principals from every binding of a policy.

    Retained members keep their relative order. Bindings are never dropped,
    even when all their members are removed. The input policy is not
    modified.

    Args:
        policy: The current policy.
        principals: Principals to remove.

    Returns:
        Policy | None: The new policy, or None if no binding contained any of
            the principals.
    """
    removal = set(principals)
    changed = False
    bindings: list[Binding] = []

    for binding in policy.bindings:
        members = [m for m in binding.members if m not in removal]
        if len(members) != len(binding.members):
            changed = True
        bindings.append(
            Binding(role=binding.role, members=members, condition=binding.condition)
        )

    if not changed:
        return None

    return Policy(
        bindings=bindings,
        etag=policy.etag,
        version=policy.version,
        extra=dict(policy.extra),
    )
