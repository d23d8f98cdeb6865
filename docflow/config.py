from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DOCFLOW_", env_file=".env", extra="ignore")

    app_env: str = "dev"
    database_url: str = "sqlite:///./docflow.db"
    sql_echo: bool = False
    log_level: str = "INFO"
    log_json: bool = False
    # quorum stored for each group grant when addTransition gets a bare group
    default_min_users: int = 1
    api_token: str = "changeme"

settings = Settings()  # reads from env
