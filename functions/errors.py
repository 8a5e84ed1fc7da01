#!/usr/bin/env python3
"""Errors raised by the external grant revoker.

Only two things can go wrong during a remediation: the inbound finding
cannot be read, or a call to the resource manager fails. Everything else
(out of scope, nothing to revoke) is a successful no-op.
"""


class RemediationError(Exception):
    """Base class for remediation errors."""


class DecodeError(RemediationError):
    """The event payload could not be parsed into a Finding."""

    def __init__(self, cause: str) -> None:
        """Initialize the DecodeError.

        Args:
            cause: Short description of why decoding failed.
        """
        self.cause = cause
        super().__init__(f"failed to read finding: {cause}")


class DependencyError(RemediationError):
    """A call to an external collaborator failed."""

    def __init__(self, operation: str, resource_name: str, cause: str) -> None:
        """Initialize the DependencyError.

        Args:
            operation: The collaborator operation that failed.
            resource_name: The resource the operation was called for.
            cause: Description of the underlying failure.
        """
        self.operation = operation
        self.resource_name = resource_name
        self.cause = cause
        super().__init__(f"failed to {operation} for {resource_name}: {cause}")
