from typing import List, Optional
from pydantic import Field, field_validator
from digital_humans.core.config import settings
from .base import BaseSchema, TimestampMixin

class GeneratePromptRequest(BaseSchema):
    description: str = Field(..., description="Free-text description of the desired persona")
    personality: Optional[str] = None
    domain: Optional[str] = None
    special_instructions: Optional[str] = None
    is_public: bool = False
    temperature: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("description must not be empty")
        return value

    def hints(self) -> dict:
        return {
            "personality": self.personality,
            "domain": self.domain,
            "special_instructions": self.special_instructions,
        }

class GeneratedCharacter(BaseSchema):
    """What the character generator hands back for a description."""
    name: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    rules: List[str] = Field(default_factory=list)
    personality: str = ""

class DigitalHumanCreate(BaseSchema):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    prompt: str = Field(..., min_length=1)
    rules: List[str] = Field(default_factory=list)
    personality: str = ""
    temperature: float = Field(default_factory=lambda: settings.default_temperature, ge=0.0, le=1.0)
    max_tokens: int = Field(default_factory=lambda: settings.default_max_tokens, gt=0)
    is_public: bool = False

class DigitalHumanUpdate(BaseSchema):
    """Partial update; only fields present in the payload are applied."""
    id: str
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    prompt: Optional[str] = Field(default=None, min_length=1)
    rules: Optional[List[str]] = None
    personality: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    is_public: Optional[bool] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"})

class DigitalHumanResponse(BaseSchema, TimestampMixin):
    id: str
    user_id: str
    name: str
    prompt: str
    rules: List[str] = Field(default_factory=list)
    personality: str = ""
    temperature: float
    max_tokens: int
    is_public: bool
