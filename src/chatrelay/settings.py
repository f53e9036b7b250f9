from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    # === General ===
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # === Server ===
    host: str = Field(default="localhost", validation_alias="HOST")
    port: int = Field(default=8080, validation_alias="PORT")
    allowed_origin: str = Field(default="http://localhost:3000", validation_alias="ALLOWED_ORIGIN")

    # === Database ===
    database_url: str = Field(
        default="sqlite:///../Database/Messaging.db", validation_alias="DATABASE_URL"
    )

    # === Chat ===
    default_channel_id: int = Field(default=1, validation_alias="DEFAULT_CHANNEL_ID")
    identity_length: int = Field(default=5, ge=1, validation_alias="IDENTITY_LENGTH")
    send_timeout: float = Field(default=10.0, gt=0, validation_alias="SEND_TIMEOUT")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_pg_scheme(cls, v: str) -> str:
        # Render/Heroku sometimes provide 'postgres://'
        if v and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+psycopg://", 1)
        return v

    @property
    def addr(self) -> str:
        return f"{self.host}:{self.port}"


settings = Settings()
