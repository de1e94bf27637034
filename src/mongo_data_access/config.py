"""
Configuration for connecting to MongoDB.

Settings are read from the environment (``MONGODB_*``) or a ``.env`` file.
"""
from datetime import timezone
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pymongo.uri_parser import parse_uri


class MongoDbSettings(BaseSettings):
    """
    Connection settings for a MongoDB data-access context.

    If ``database_name`` is not set, the database named in the path of the
    connection string is used (``mongodb://host:27017/shop`` -> ``shop``).
    """

    model_config = SettingsConfigDict(
        env_prefix="MONGODB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    connection_string: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string"
    )
    database_name: Optional[str] = Field(
        default=None,
        description="Database name, defaults to the one in the connection string"
    )
    app_name: Optional[str] = Field(
        default=None,
        description="Application name reported to the server"
    )
    server_selection_timeout_ms: int = Field(
        default=30000,
        ge=1,
        description="How long to wait for a suitable server, in milliseconds"
    )

    def resolved_database_name(self) -> str:
        """
        Get the database name to use.

        Raises:
            ValueError: If neither the settings nor the connection string name a database
        """
        if self.database_name:
            return self.database_name
        database = database_from_connection_string(self.connection_string)
        if not database:
            raise ValueError(
                "No database name configured and none found in the connection string"
            )
        return database

    def client_kwargs(self) -> dict:
        """Keyword arguments for ``MongoClient`` / ``AsyncIOMotorClient``."""
        kwargs = {
            "uuidRepresentation": "standard",
            "tz_aware": True,
            "tzinfo": timezone.utc,
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
        }
        if self.app_name:
            kwargs["appname"] = self.app_name
        return kwargs

    @property
    def connection_display(self) -> str:
        """Get the connection string without credentials, for logging."""
        if '@' in self.connection_string:
            scheme, _, rest = self.connection_string.partition("://")
            return f"{scheme}://{rest.split('@', 1)[1]}"
        return self.connection_string


def database_from_connection_string(connection_string: str) -> Optional[str]:
    """Extract the database name from a MongoDB connection string, if any."""
    return parse_uri(connection_string, validate=False).get("database")
