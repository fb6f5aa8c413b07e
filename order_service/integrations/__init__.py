"""External integrations: user service and Kafka."""
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitBreakerOpenError
from .kafka_publisher import KafkaDeadLetterPublisher, KafkaOrderEventPublisher
from .user_directory import UserDirectoryClient

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerOpenError",
    "KafkaDeadLetterPublisher",
    "KafkaOrderEventPublisher",
    "UserDirectoryClient",
]
