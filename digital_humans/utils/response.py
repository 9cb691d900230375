from typing import Any, Optional
from pydantic import BaseModel
from digital_humans.schemas.base import BaseSchema

class APIResponse(BaseModel):
    success: bool = True
    message: str = "Success"
    data: Optional[Any] = None

def to_payload(obj):
    if isinstance(obj, BaseSchema):
        return obj.to_payload()
    elif isinstance(obj, list):
        return [to_payload(item) for item in obj]
    elif isinstance(obj, dict):
        return {k: to_payload(v) for k, v in obj.items()}
    else:
        return obj

def success_response(data: Any = None, message: str = "Success") -> APIResponse:
    return APIResponse(success=True, message=message, data=to_payload(data))
