from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = "sqlite:///useradmin.db"
    api_title: str = "User Administration"
    access_token_expire_minutes: int = 15
    refresh_token_expire_minutes: int = 60 * 24 * 7
    jwt_secret: str = "change-this-secret-before-deploying"
    jwt_algorithm: str = "HS256"
    login_rate_limit: str = "5/minute"
    rate_limit_enabled: bool = True
    # Seeded on startup when both are set and the user does not exist yet
    admin_username: str | None = None
    admin_password: str | None = None


settings = Settings()
