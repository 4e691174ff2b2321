from docflow.config.settings import Settings
from docflow.events.base import BaseEventPublisher
from docflow.events.memory_bus import InMemoryEventBus
from docflow.events.postgres_publisher import PostgresEventPublisher


class EventPublisherFactory:
    """Creates the event backend selected by settings."""

    BACKENDS: dict[str, type[BaseEventPublisher]] = {
        "memory": InMemoryEventBus,
        "postgres": PostgresEventPublisher,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseEventPublisher:
        backend = settings.event_backend.lower()
        publisher_cls = cls.BACKENDS.get(backend)
        if publisher_cls is None:
            raise ValueError(
                f"Unknown event backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
            )
        return publisher_cls()
