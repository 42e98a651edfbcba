"""JSON envelope helpers shared by every router"""

import math
from typing import Any, Optional


def success(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def paginated(items: list, total: int, page: int, limit: int) -> dict:
    return {
        "success": True,
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    }
