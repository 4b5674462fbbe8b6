"""MongoDB configuration using pydantic-settings."""

from functools import cached_property
from typing import Any

from pydantic_settings import BaseSettings
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient


class MongoConfiguration(BaseSettings):
    """Configuration and factory for MongoDB resources.

    Implements the HasLifecycle protocol so the application closes the
    client on shutdown.

    All settings can be configured via environment variables with the
    CHRONICLE_MONGO_ prefix. For example:
    - CHRONICLE_MONGO_URI=mongodb://localhost:27017
    - CHRONICLE_MONGO_DATABASE=myapp
    - CHRONICLE_MONGO_EVENTS_COLLECTION=domain_events

    Attributes:
        uri: MongoDB connection URI.
        database: Database name to use.
        events_collection: Collection name for event storage.

    Example:
        >>> config = MongoConfiguration()
        >>> store = MongoEventStore(config.events)
        >>> app = (
        ...     ApplicationBuilder()
        ...     .use_event_store(store)
        ...     .register_lifecycle(config)
        ...     .build()
        ... )
        >>> async with app:  # calls on_startup/on_shutdown
        ...     ...
    """

    uri: str = "mongodb://localhost:27017"
    database: str = "chronicle"
    events_collection: str = "events"

    model_config = {"env_prefix": "CHRONICLE_MONGO_"}

    @cached_property
    def client(self) -> AsyncMongoClient[dict[str, Any]]:
        """The async client, created lazily and returning UTC-aware datetimes."""
        return AsyncMongoClient(self.uri, tz_aware=True)

    @cached_property
    def db(self) -> AsyncDatabase[dict[str, Any]]:
        return self.client[self.database]

    @cached_property
    def events(self) -> AsyncCollection[dict[str, Any]]:
        """Get the events collection."""
        return self.db[self.events_collection]

    async def on_startup(self) -> None:
        """No-op: connections are established lazily."""

    async def on_shutdown(self) -> None:
        """Close the client if it was created."""
        if "client" in self.__dict__:
            await self.client.close()
