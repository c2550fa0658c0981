"""RavenDB connection target for the vector store."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from mdindex.constants import DEFAULT_RAVENDB_DATABASE, DEFAULT_RAVENDB_URL

load_dotenv()


@dataclass(frozen=True)
class RavenDBConfig:
    """Server and database holding every vector collection.

    Attributes:
        url: Server URL without a trailing slash
        database: Database name
    """

    url: str = DEFAULT_RAVENDB_URL
    database: str = DEFAULT_RAVENDB_DATABASE

    @classmethod
    def resolve(cls, url: str | None = None, database: str | None = None) -> "RavenDBConfig":
        """Fill whatever was not given from RAVENDB_URL and RAVENDB_DATABASE."""
        url = url or os.getenv("RAVENDB_URL", DEFAULT_RAVENDB_URL)
        database = database or os.getenv("RAVENDB_DATABASE", DEFAULT_RAVENDB_DATABASE)
        return cls(url=url.rstrip("/"), database=database)

    @property
    def admin_databases_url(self) -> str:
        return f"{self.url}/admin/databases"

    @property
    def database_url(self) -> str:
        return f"{self.url}/databases/{self.database}"

    @staticmethod
    def get_url() -> str:
        """RavenDB server URL from the environment (default: http://localhost:8080)."""
        return RavenDBConfig.resolve().url

    @staticmethod
    def get_database_name() -> str:
        """RavenDB database name from the environment (default: mdindex)."""
        return RavenDBConfig.resolve().database
