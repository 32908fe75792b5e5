# Copyright (c) 2024-2026 nickdsmith. All Rights Reserved.
# SPDX-License-Identifier: PROPRIETARY
#
# This file is proprietary and confidential. Unauthorized copying of this file,
# via any medium is strictly prohibited.

"""Shared JSON serialization utilities for log and response encoding."""

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any


def json_serializer(obj: Any) -> Any:
    """
    Type-safe JSON serializer used as ``default=`` for ``json.dumps``.

    - datetime/date → ISO 8601 string
    - Path → string
    - Enums → value
    - bytes → UTF-8 text (invalid bytes replaced)
    - dataclasses → dict
    - Everything else → string (fallback)
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="replace")
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if hasattr(obj, "value"):
        return obj.value
    return str(obj)


__all__ = ["json_serializer"]
