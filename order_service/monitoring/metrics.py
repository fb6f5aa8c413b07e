"""
Prometheus metrics for order service monitoring.

Tracks:
- Orders created and status changes
- Order-created notification publishing
- User directory calls and circuit breaker state
- Inbound payment event outcomes
"""
from prometheus_client import Counter, Gauge, Histogram

# Order metrics
orders_created_total = Counter(
    "orders_created_total",
    "Total number of orders created",
)

order_payment_amount = Histogram(
    "order_payment_amount",
    "Order payment amounts in minor units",
    buckets=(100, 500, 1000, 5000, 10000, 50000, 100000, 500000, 1000000),
)

order_status_changes_total = Counter(
    "order_status_changes_total",
    "Total order status changes",
    ["status"],
)

orders_deleted_total = Counter(
    "orders_deleted_total",
    "Total number of orders deleted",
)

# Notification metrics
order_events_published_total = Counter(
    "order_events_published_total",
    "Order-created notifications by publish outcome",
    ["status"],  # enqueued, delivered, failed
)

# User directory metrics
user_directory_requests_total = Counter(
    "user_directory_requests_total",
    "Total user directory lookups",
    ["outcome"],  # found, missing, error, rejected
)

user_directory_duration_seconds = Histogram(
    "user_directory_duration_seconds",
    "User directory call duration in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

user_directory_circuit_state = Gauge(
    "user_directory_circuit_state",
    "User directory circuit breaker state (0=closed, 1=open, 2=half_open)",
)

# Payment event metrics
payment_events_total = Counter(
    "payment_events_total",
    "Inbound payment events by outcome",
    ["outcome"],  # processed, ignored, dead_lettered, retried
)

payment_event_processing_duration_seconds = Histogram(
    "payment_event_processing_duration_seconds",
    "Payment event processing duration in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_order_created(payment_amount: int) -> None:
        """Record a created order and its payment amount."""
        orders_created_total.inc()
        order_payment_amount.observe(payment_amount)

    @staticmethod
    def record_status_change(status: str) -> None:
        """Record an order status change."""
        order_status_changes_total.labels(status=status).inc()

    @staticmethod
    def record_order_deleted() -> None:
        orders_deleted_total.inc()

    @staticmethod
    def record_order_event(status: str) -> None:
        """Record an order-created notification outcome."""
        order_events_published_total.labels(status=status).inc()

    @staticmethod
    def record_user_lookup(outcome: str, duration_seconds: float = 0) -> None:
        """Record a user directory lookup."""
        user_directory_requests_total.labels(outcome=outcome).inc()
        if duration_seconds > 0:
            user_directory_duration_seconds.observe(duration_seconds)

    @staticmethod
    def set_circuit_breaker_state(state: str) -> None:
        """Set circuit breaker state."""
        state_map = {"closed": 0, "open": 1, "half_open": 2}
        user_directory_circuit_state.set(state_map.get(state, 0))

    @staticmethod
    def record_payment_event(outcome: str, duration_seconds: float = 0) -> None:
        """Record an inbound payment event outcome."""
        payment_events_total.labels(outcome=outcome).inc()
        if duration_seconds > 0:
            payment_event_processing_duration_seconds.observe(duration_seconds)


# Export singleton instance
metrics = MetricsCollector()
