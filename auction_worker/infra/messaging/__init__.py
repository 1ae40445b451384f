"""RabbitMQ consumption pipeline.

    connect_with_retry -> declare_topology -> BoundedDispatcher
        -> DeliveryLifecycleController -> domain handler(event, context)
"""

from auction_worker.infra.messaging.connection import RETRYABLE_CONNECT_ERRORS, connect_with_retry
from auction_worker.infra.messaging.dead_letter import (
    QueueDepth,
    original_routing_key,
    queue_depths,
    replay_dead_letters,
)
from auction_worker.infra.messaging.dispatcher import BoundedDispatcher
from auction_worker.infra.messaging.events import DeliveryContext, DeliveryHeaders, Event
from auction_worker.infra.messaging.exceptions import (
    DeliveryStreamClosedError,
    EventDecodeError,
    MessagingError,
    TopologyError,
)
from auction_worker.infra.messaging.lifecycle import DeliveryLifecycleController, DeliveryOutcome
from auction_worker.infra.messaging.topology import TopologySpec, declare_topology

__all__ = [
    "RETRYABLE_CONNECT_ERRORS",
    "BoundedDispatcher",
    "DeliveryContext",
    "DeliveryHeaders",
    "DeliveryLifecycleController",
    "DeliveryOutcome",
    "DeliveryStreamClosedError",
    "Event",
    "EventDecodeError",
    "MessagingError",
    "QueueDepth",
    "TopologyError",
    "TopologySpec",
    "connect_with_retry",
    "declare_topology",
    "original_routing_key",
    "queue_depths",
    "replay_dead_letters",
]
