from typing import Optional
from pydantic import BaseModel, Field


class InterpreterSettings(BaseModel):
    """Model representing workflow interpreter settings"""

    sampling_enabled: bool = True
    sampling_max_tokens: int = Field(default=1000, gt=0)
    sampling_system_prompt: Optional[str] = None
    sampling_model: Optional[str] = None
    state_ttl_seconds: Optional[int] = Field(default=None, gt=0)
    log_level: str = "INFO"
