"""JSON formatter."""

from __future__ import annotations

import json
from typing import Any


def render(result: dict[str, Any]) -> str:
    """Render a query statistics result as pretty JSON.

    Placeholders are emitted as null; group and column order is preserved.
    """
    return json.dumps(result, indent=2, default=str)
