# Defines application-wide settings using pydantic-settings' BaseSettings
# Manages environment variables for:
# API configuration (prefix, project name)
# Database connection string
# Azure blob containers and their SAS tokens
# Firebase credentials
# Server host/port and request limits


import json
import urllib.parse
from typing import Annotated, List, Union

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API configuration
    API_STR: str = "/api"
    PROJECT_NAME: str = "Polis API"
    VERSION: str = "0.1.0"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    MAX_BODY_SIZE: int = 10 * 1024 * 1024  # 10 MB JSON bodies

    # Database (required, no fallback)
    AZURE_SQL_CONNECTION_STRING: str

    # Azure blob storage
    AZURE_STORAGE_ACCOUNT: str = "photosandvideospolis"
    AZURE_BLOB_ENDPOINT: str = ""
    AZURE_PHOTOS_CONTAINER: str = "post-images"
    AZURE_PROFILES_CONTAINER: str = "profile-pics"
    AZURE_BLOB_URL_PHOTOS: str = ""
    AZURE_BLOB_URL_PROFILES: str = ""
    BLOB_TIMEOUT_SECONDS: float = 30.0

    # Firebase
    FIREBASE_SERVICE_ACCOUNT_PATH: str = "firebase-service-account.json"

    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]

    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, str):
            try:
                return json.loads(v)
            except ValueError:
                return []
        return v

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the configured connection string.

        A value that is already a URL is used as is. Anything else is treated
        as an ODBC connection string for Azure SQL.
        """
        return to_sqlalchemy_url(self.AZURE_SQL_CONNECTION_STRING)

    @property
    def blob_endpoint(self) -> str:
        if self.AZURE_BLOB_ENDPOINT:
            return self.AZURE_BLOB_ENDPOINT.rstrip("/")
        return f"https://{self.AZURE_STORAGE_ACCOUNT}.blob.core.windows.net"


def to_sqlalchemy_url(connection_string: str) -> str:
    if "://" in connection_string:
        return connection_string
    return "mssql+pyodbc:///?odbc_connect=" + urllib.parse.quote_plus(connection_string)


settings = Settings()
