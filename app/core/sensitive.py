"""Detection of credential-like content in persisted records."""
from __future__ import annotations

import json
from typing import Any

SENSITIVE_TERMS = ("password", "token", "secret", "key")


def find_sensitive_term(value: Any) -> str | None:
    """Return the first blocklisted term found in ``value``, if any.

    Strings are checked directly; other values are checked through their
    JSON rendering so that dictionary keys are covered too.
    """

    if value is None:
        return None
    if isinstance(value, str):
        haystack = value
    else:
        haystack = json.dumps(value, default=str)
    haystack = haystack.lower()
    for term in SENSITIVE_TERMS:
        if term in haystack:
            return term
    return None
