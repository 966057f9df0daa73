"""
samvera.api.schemas

Response-side helpers shared by routers.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

DELETED: dict[str, bool] = {"success": True}


class OutModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def dump(cls, row: Any) -> dict[str, Any]:
        return cls.model_validate(row).model_dump(mode="json", by_alias=True)
