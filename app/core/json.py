"""Custom JSON handling."""

from __future__ import annotations

import datetime
import json
from decimal import Decimal
from typing import Any

from fastapi.responses import JSONResponse


class StudioJSONEncoder(json.JSONEncoder):
  """JSON encoder that handles Decimal counters and timestamps from Postgres rows."""

  def default(self, obj: Any) -> Any:
    if isinstance(obj, Decimal):
      return int(obj) if obj % 1 == 0 else float(obj)
    if isinstance(obj, datetime.datetime | datetime.date):
      return obj.isoformat()
    return super().default(obj)


class StudioJSONResponse(JSONResponse):
  """JSONResponse that uses StudioJSONEncoder with compact separators."""

  def render(self, content: Any) -> bytes:
    return json.dumps(content, ensure_ascii=False, allow_nan=False, indent=None, separators=(",", ":"), cls=StudioJSONEncoder).encode("utf-8")
