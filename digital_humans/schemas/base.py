from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional

class BaseSchema(BaseModel):
    """Schemas travel over the wire in camelCase and accept snake_case too."""
    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

class TimestampMixin(BaseModel):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
