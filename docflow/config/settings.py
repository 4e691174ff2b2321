from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docflow"
    db_username: str = "docflow"
    db_password: str = "secret"

    record_store: str = "postgres"
    event_backend: str = "memory"

    files_root: str = "/app/files"

    pdf_engine: str = "pdfplumber"
    ocr_language: str = "eng"

    analysis_provider: str = "openai"
    analysis_api_key: str = ""
    analysis_model_name: str = "gpt-4o-mini"
    analysis_base_url: str = ""
    analysis_timeout_seconds: int = 30
    analysis_temperature: float = 0.0

    pipeline_max_workers: int = 8
    comparison_max_workers: int = 4

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_sender_name: str = "Docflow Document Processor"
    smtp_use_tls: bool = True
