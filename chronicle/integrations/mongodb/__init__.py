"""MongoDB integration for chronicle.

Provides a MongoDB implementation of the EventStore interface using the
async PyMongo driver.

Usage:
    >>> from chronicle.integrations.mongodb import MongoConfiguration, MongoEventStore
    >>>
    >>> config = MongoConfiguration(uri="mongodb://localhost:27017", database="myapp")
    >>> store = MongoEventStore(config.events)
    >>> await store.initialize_schema()
"""

from .config import MongoConfiguration
from .event_store import MongoEventStore

__all__ = ["MongoConfiguration", "MongoEventStore"]
