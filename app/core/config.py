from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SECRET_KEY: str = "CHANGE_ME"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    TOKEN_ISSUER: str = "hi5tech-identity"

    COOKIE_NAME: str = "session"
    COOKIE_SECURE: bool = True
    COOKIE_SAMESITE: str = "Lax"
    # cookie Domain and tenant lookup only apply to hosts under this domain;
    # empty falls back to guessing from hosts with three or more labels
    ROOT_DOMAIN: Optional[str] = "hi5tech.co.uk"
    ENFORCE_TENANT_MATCH: bool = True

    IDENTITY_PROVIDER: str = "local"  # "local" | "gotrue"
    PROVIDER_TIMEOUT_SECONDS: float = 5.0

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    IDENTITY_DB_NAME: str = "identity"
    DATABASE_URL: Optional[str] = None

    GOTRUE_URL: Optional[str] = None
    GOTRUE_API_KEY: Optional[str] = None

    PERMISSIONS_FILE: Optional[str] = None

    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def IDENTITY_DB_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://"
            f"{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}"
            f"/{self.IDENTITY_DB_NAME}"
        )


settings = Settings()
