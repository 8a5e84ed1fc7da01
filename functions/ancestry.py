#!/usr/bin/env python3
"""Resource ancestry and remediation scope.

A project's ancestry is the ordered chain of containers above it, as
returned by the resource manager ``getAncestry`` call. Remediation is only
allowed for resources that sit under one of the configured folders.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


logger = logging.getLogger(__name__)


class AncestorType(str, Enum):
    """Kinds of containers in a resource hierarchy."""

    PROJECT = "project"
    FOLDER = "folder"
    ORGANIZATION = "organization"


@dataclass(frozen=True)
class Ancestor:
    """A single entry of an ancestry chain."""

    type: AncestorType
    id: str

    @property
    def resource_name(self) -> str:
        """Relative resource name, e.g. ``folders/123``."""
        return f"{self.type.value}s/{self.id}"


def ancestors_from_response(response: dict[str, Any] | None) -> list[Ancestor]:
    """Convert a ``getAncestry`` response into Ancestors.

    Args:
        response: Response body, e.g.
            ``{"ancestor": [{"resourceId": {"type": "folder", "id": "1"}}]}``.

    Returns:
        list[Ancestor]: Ancestors in the order returned by the API.
    """
    ancestors: list[Ancestor] = []
    for entry in (response or {}).get("ancestor", []) or []:
        resource_id = entry.get("resourceId", {}) or {}
        raw_type = resource_id.get("type", "")
        try:
            ancestor_type = AncestorType(raw_type)
        except ValueError:
            logger.warning(f"Skipping ancestor with unknown type '{raw_type}'")
            continue
        ancestors.append(Ancestor(type=ancestor_type, id=str(resource_id.get("id", ""))))
    return ancestors


def configured_folders(folder_ids: Iterable[str]) -> set[str]:
    """Return the configured folder ids, ignoring empty placeholders."""
    return {folder_id for folder_id in folder_ids if folder_id}


def in_scope(ancestry: Iterable[Ancestor], folder_ids: Iterable[str]) -> bool:
    """Decide whether a resource falls inside the remediation scope.

    Only membership matters: a resource is in scope when any folder in its
    ancestry is one of ``folder_ids``. With no folder configured nothing is
    ever in scope.

    Args:
        ancestry: The resource's ancestry chain.
        folder_ids: Folder ids remediation is allowed to act in.

    Returns:
        bool: True if the resource is in scope.
    """
    folders = configured_folders(folder_ids)
    if not folders:
        return False

    return any(
        ancestor.type is AncestorType.FOLDER and ancestor.id in folders
        for ancestor in ancestry
    )
