from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SPINFOUR_", env_file=".env", extra="ignore")

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    online_rotation_cap: Optional[int] = Field(default=3, ge=0)
    local_rotation_cap: Optional[int] = Field(default=None, ge=0)
    auto_rotate_delay_ms: int = Field(
        default=1500,
        ge=0,
        description="Pause between a placement and its automatic rotation",
    )
    ai_time_ms: int = Field(
        default=1500,
        ge=1,
        description="Search budget per computer move, also the ceiling for requested hints",
    )
    default_difficulty: Literal["easy", "medium", "hard", "expert", "master"] = "medium"
