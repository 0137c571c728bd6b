from __future__ import annotations

from datetime import datetime
from typing import Dict

from pydantic import ConfigDict

from core.domain.entities.base_entity import MongoEntity


class MinuteSnapshotEntity(MongoEntity):
    """
    Latest price of each required symbol, captured once per snapshot interval.

    Only written when every required symbol has a cached value.
    """

    model_config = ConfigDict(frozen=True)

    values: Dict[str, float]
    captured_at: datetime
