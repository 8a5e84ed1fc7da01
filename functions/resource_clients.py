#!/usr/bin/env python3
"""Resource manager clients.

The revoker only needs three calls from the resource manager: the ancestry
of a resource, and reading and replacing its IAM policy. They are kept
behind an interface so the business logic can run against the in-memory
stub in tests and local runs.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import google.auth
import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient import discovery
from googleapiclient.errors import HttpError

from ancestry import Ancestor, AncestorType, ancestors_from_response
from errors import DependencyError
from finding import project_id_from_resource_name
from policy import Policy


logger = logging.getLogger(__name__)

SERVICE_NAME = "cloudresourcemanager.googleapis.com"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
# Version 3 is required to read bindings that carry conditions
REQUESTED_POLICY_VERSION = 3


class ResourceClientInterface(ABC):
    """Abstract interface for resource manager clients to enable mocking.

    Implementations raise DependencyError for any failure talking to the
    resource manager.
    """

    @abstractmethod
    def get_ancestry(self, resource_name: str) -> list[Ancestor]:
        """Get the ancestry chain of a resource.

        Args:
            resource_name: Full resource name of the affected resource.

        Returns:
            list[Ancestor]: Containers from the resource outward to the root.
        """
        pass

    @abstractmethod
    def get_policy(self, resource_name: str) -> Policy:
        """Get the current IAM policy of a resource."""
        pass

    @abstractmethod
    def set_policy(self, resource_name: str, policy: Policy) -> Policy:
        """Replace the IAM policy of a resource.

        Args:
            resource_name: Full resource name of the affected resource.
            policy: The policy to store.

        Returns:
            Policy: The policy as stored by the resource manager.
        """
        pass


class GCPResourceClients(ResourceClientInterface):
    """Cloud Resource Manager v1 client wrapper."""

    def __init__(self, service: Any = None, credentials: Any = None) -> None:
        """Initialize the Cloud Resource Manager client.

        Args:
            service: A pre-built discovery service. Built from application
                default credentials when omitted.
            credentials: Credentials to build the service with.
        """
        if service is None:
            try:
                if credentials is None:
                    credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
                service = discovery.build(
                    "cloudresourcemanager",
                    "v1",
                    credentials=credentials,
                    cache_discovery=False,
                )
            except (GoogleAuthError, HttpError, httplib2.HttpLib2Error, OSError) as e:
                logger.error(f"Failed to build resource manager client: {e!s}")
                raise DependencyError("build client", SERVICE_NAME, str(e)) from e
        self.service = service

    def _project_id(self, operation: str, resource_name: str) -> str:
        project_id = project_id_from_resource_name(resource_name)
        if not project_id:
            raise DependencyError(
                operation, resource_name, "resource is not a project resource"
            )
        return project_id

    def _execute(self, operation: str, resource_name: str, request: Any) -> Any:
        try:
            return request.execute()
        except (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError) as e:
            logger.error(f"Resource manager {operation} failed: {e!s}")
            raise DependencyError(operation, resource_name, str(e)) from e

    def get_ancestry(self, resource_name: str) -> list[Ancestor]:
        """Get the ancestry of the project named in the resource."""
        project_id = self._project_id("get ancestry", resource_name)
        request = self.service.projects().getAncestry(projectId=project_id, body={})
        response = self._execute("get ancestry", resource_name, request)
        return ancestors_from_response(response)

    def get_policy(self, resource_name: str) -> Policy:
        """Get the IAM policy of the project named in the resource."""
        project_id = self._project_id("get policy", resource_name)
        request = self.service.projects().getIamPolicy(
            resource=project_id,
            body={"options": {"requestedPolicyVersion": REQUESTED_POLICY_VERSION}},
        )
        response = self._execute("get policy", resource_name, request)
        return Policy.from_dict(response)

    def set_policy(self, resource_name: str, policy: Policy) -> Policy:
        """Replace the IAM policy of the project named in the resource."""
        project_id = self._project_id("set policy", resource_name)
        request = self.service.projects().setIamPolicy(
            resource=project_id, body={"policy": policy.to_dict()}
        )
        response = self._execute("set policy", resource_name, request)
        return Policy.from_dict(response)


class ResourceManagerStub(ResourceClientInterface):
    """In-memory resource manager for tests and local runs.

    Set ``ancestry`` and ``policy`` before use; the last policy passed to
    ``set_policy`` is recorded in ``saved_policy``. Assigning an exception
    to one of the ``*_error`` attributes makes that call fail.
    """

    def __init__(
        self,
        ancestry: list[Ancestor] | None = None,
        policy: Policy | None = None,
    ) -> None:
        """Initialize the stub."""
        self.ancestry = ancestry or []
        self.policy = policy or Policy()
        self.saved_policy: Policy | None = None
        self.calls: list[tuple[str, str]] = []
        self.ancestry_error: Exception | None = None
        self.get_policy_error: Exception | None = None
        self.set_policy_error: Exception | None = None

    @classmethod
    def from_paths(
        cls,
        paths: list[str],
        members: list[str] | None = None,
        role: str = "roles/editor",
    ) -> "ResourceManagerStub":
        """Build a stub from ancestry paths such as ``folder/123``.

        Args:
            paths: Ancestry entries in ``<type>/<id>`` form.
            members: Members of the single binding of the initial policy.
            role: Role of the single binding of the initial policy.

        Returns:
            ResourceManagerStub: The configured stub.
        """
        ancestry = []
        for path in paths:
            ancestor_type, _, ancestor_id = path.partition("/")
            ancestry.append(Ancestor(type=AncestorType(ancestor_type), id=ancestor_id))
        policy = Policy.from_dict(
            {"bindings": [{"role": role, "members": list(members or [])}]}
        )
        return cls(ancestry=ancestry, policy=policy)

    def _fail(self, operation: str, resource_name: str, error: Exception | None) -> None:
        if error is not None:
            raise DependencyError(operation, resource_name, str(error)) from error

    def get_ancestry(self, resource_name: str) -> list[Ancestor]:
        """Return the configured ancestry."""
        self.calls.append(("get_ancestry", resource_name))
        logger.info(f"STUB: get_ancestry({resource_name})")
        self._fail("get ancestry", resource_name, self.ancestry_error)
        return list(self.ancestry)

    def get_policy(self, resource_name: str) -> Policy:
        """Return a copy of the configured policy."""
        self.calls.append(("get_policy", resource_name))
        logger.info(f"STUB: get_policy({resource_name})")
        self._fail("get policy", resource_name, self.get_policy_error)
        return Policy.from_dict(self.policy.to_dict())

    def set_policy(self, resource_name: str, policy: Policy) -> Policy:
        """Record and store the policy."""
        self.calls.append(("set_policy", resource_name))
        logger.info(f"STUB: set_policy({resource_name})")
        self._fail("set policy", resource_name, self.set_policy_error)
        self.saved_policy = policy
        self.policy = Policy.from_dict(policy.to_dict())
        return policy
