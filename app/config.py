from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/goalkernel"
    default_tz: str = "UTC"  # Local calendar used for Daily/Weekly/Monthly periods
    kernel_api_key: str | None = None

    # Requests without X-User-Id are scoped to this user (single-user deployments).
    default_user_id: str = "00000000-0000-0000-0000-000000000000"

    log_level: str = "INFO"
    auto_create_schema: bool = False  # Run CREATE TABLE IF NOT EXISTS on startup

    # Built-in goal categories, listed before a user's custom ones.
    default_categories: list[str] = [
        "Health",
        "Career",
        "Finance",
        "Personal",
        "Learning",
        "Relationships",
    ]
    default_category_color: str = "#3b82f6"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
