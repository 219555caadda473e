from pydantic import Field
from pydantic_settings import BaseSettings


class CouchDBConfig(BaseSettings):
    """CouchDB connection configuration."""

    COUCHDB_URL: str = Field(
        description="CouchDB server URL, optionally with credentials, base path and default query.",
        default="http://localhost:5984/",
    )

    COUCHDB_USERNAME: str = Field(
        description="CouchDB basic authentication username. Overrides credentials in COUCHDB_URL.",
        default="",
    )

    COUCHDB_PASSWORD: str = Field(
        description="CouchDB basic authentication password.",
        default="",
    )

    COUCHDB_CONTENT_TYPE: str = Field(
        description="Default Content-Type of POST and PUT request bodies.",
        default="application/json;charset=utf-8",
    )
