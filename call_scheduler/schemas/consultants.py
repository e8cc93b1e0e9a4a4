# call_scheduler/schemas/consultants.py

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConsultantSummary(BaseModel):
    """Public consultant entry: the id to pass as consultantId and the open weekdays."""
    id: str
    name: str
    title: Optional[str] = None
    available_days: list[int] = Field(description="0 = Sunday … 6 = Saturday")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
