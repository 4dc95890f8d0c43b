"""
Configuration — Pydantic v2 Settings (env / .env)
=================================================

Purpose
-------
Centralized, strongly-typed application configuration using:
- Pydantic v2 `BaseSettings` for environment-driven values
- `pydantic-settings` v2 for `.env` loading and model config

Load Order & Behavior
---------------------
- Values are read from the environment; if not present, `.env` is used.
- Missing required fields raise a validation error at import time.
- `extra="ignore"`: unknown env vars are ignored (not an error).

Two databases are configured:
- the application database (`DB_*`) that stores CRM chat turns and chat messages
- the CRM database (`CRM_DB_*`) that user questions are answered against

Usage
-----
from crm_backend.database.config.config import settings

db_host = settings.DB_HOST
sql_model = settings.OPEN_AI_MODEL  # used when a request omits llm_model

Security
--------
- Never commit secrets or the `.env` file to source control.
- The CRM credentials should belong to a read-only database role.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables
    or a `.env` file. Provides strongly typed access to environment values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application database (chat history)
    DB_USERNAME: str = Field(..., description="Application database username.")
    DB_PASSWORD: str = Field(..., description="Application database password.")
    DB_HOST: str = Field(..., description="Hostname or IP address of the application database.")
    DB_PORT: int = Field(5432, description="Port of the application database.")
    DB_DATABASE_NAME: str = Field(..., description="Name of the application database.")
    DB_DRIVER_NAME: str = Field("postgresql+asyncpg", description="Async SQLAlchemy driver for the application database.")

    # CRM database (queried with generated SQL)
    CRM_DB_USERNAME: str = Field(..., description="CRM database username (read-only role recommended).")
    CRM_DB_PASSWORD: str = Field(..., description="CRM database password.")
    CRM_DB_HOST: str = Field(..., description="Hostname or IP address of the CRM database.")
    CRM_DB_PORT: int = Field(5432, description="Port of the CRM database.")
    CRM_DB_DATABASE_NAME: str = Field(..., description="Name of the CRM database.")
    CRM_DB_DRIVER_NAME: str = Field("postgresql+asyncpg", description="Async SQLAlchemy driver for the CRM database.")

    # Security
    API_KEY: str = Field(..., description="Shared secret expected in the `x-api-key` header.")

    # Model providers
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key for hosted chat and embedding models.")
    OLLAMA_SERVER_URL: str = Field("http://localhost:11434", description="URL of the Ollama server for local models.")
    OPEN_AI_MODEL: str = Field("gpt-4o-mini", description="SQL synthesis model when a request omits `llm_model`.")
    OPEN_AI_CHAT_MODEL: str = Field("gpt-3.5-turbo", description="Hosted model behind the plain chat endpoint.")
    LOCAL_CHAT_MODEL: str = Field("gemma3:latest", description="Local model behind the plain chat endpoint.")
    CLASSIFIER_MODEL: str = Field("llama3.1:8b", description="Local model for intent, conversation and interpretation.")

    # Retrieval
    VECTOR_INDEX_DIR: str = Field("vector_indexes", description="Root directory of the persisted vector indexes.")
    RETRIEVAL_TOP_K: int = Field(4, description="Number of chunks retrieved per query.")
    HISTORY_TURNS: int = Field(5, description="Number of previous turns fed back into prompts.")
    SQL_RULES_PATH: str | None = Field(None, description="Optional JSON file overriding the CRM naming rules.")

    # Runtime
    FRONTEND_URL: str = Field("http://localhost:5173", description="Allowed CORS origin.")
    INIT_MODE: str = Field("runtime", description="`runtime` builds the pipeline at startup; anything else skips it.")
    UPLOAD_DIR: str = Field("documents/input", description="Directory where uploaded documents are stored.")


# Singleton instance of Settings, ready to be imported across the app
settings = Settings()
"""Defines a Settings object that contains the contents of the .env file"""
