#!/usr/bin/env python3
"""Disallowed domain checks for IAM principals.

Principals look like ``user:tom@gmail.com`` or
``serviceAccount:bot@project.iam.gserviceaccount.com``. The domain is
whatever follows the last ``@``.
"""

from collections.abc import Iterable


def principal_domain(principal: str) -> str | None:
    """Return the domain of a principal, or None if it has none.

    Args:
        principal: Principal identifier in ``<type>:<value>`` form.

    Returns:
        str | None: The domain, or None for principals such as
            ``allUsers`` or ``domain:example.com`` that carry no ``@``.
    """
    _, separator, value = principal.partition(":")
    if not separator:
        value = principal
    if "@" not in value:
        return None
    domain = value.rsplit("@", 1)[1]
    return domain or None


def is_disallowed(principal: str, disallowed_domains: Iterable[str]) -> bool:
    """Check whether a principal belongs to a disallowed domain.

    Matching is exact and case-sensitive. Principals whose domain cannot be
    determined are never disallowed.
    """
    domain = principal_domain(principal)
    if domain is None:
        return False
    return domain in {d for d in disallowed_domains if d}


def select_disallowed(
    members: Iterable[str], disallowed_domains: Iterable[str]
) -> list[str]:
    """Select the members that belong to a disallowed domain.

    Args:
        members: Principals to check, typically a finding's external members.
        disallowed_domains: Domains that may not hold grants.

    Returns:
        list[str]: Disallowed principals in input order, without duplicates.
    """
    domains = [d for d in disallowed_domains if d]
    selected: list[str] = []
    for member in members:
        if member not in selected and is_disallowed(member, domains):
            selected.append(member)
    return selected
