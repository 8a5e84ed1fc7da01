#!/usr/bin/env python3
"""Cloud Functions source entry point.

Deploy with ``--entry-point revoke_external_grants``.
"""

from revoker import revoke_external_grants


__all__ = ["revoke_external_grants"]
