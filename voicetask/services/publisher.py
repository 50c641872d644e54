"""Recorder event publisher for pub/sub notification of front-ends."""

import logging
from pubsub import pub

from ..models.recording import RecorderEvent

logger = logging.getLogger(__name__)


class RecorderEventPublisher:
    """Publishes recorder lifecycle events using pubsub.pub."""

    TOPIC = "recorder.events"

    def __init__(self, topic: str = TOPIC):
        """Initialize recorder event publisher.

        Args:
            topic: Pub/sub topic name for recorder events
        """
        self.topic = topic
        logger.info(f"RecorderEventPublisher initialized with topic: {topic}")

    def publish(self, event: RecorderEvent) -> None:
        """Publish a recorder event to the pub/sub topic.

        A failing listener is logged and does not interrupt the recorder.
        """
        try:
            pub.sendMessage(self.topic, event=event)
        except Exception as e:
            logger.error(f"Listener failed on {event.event_type} event: {e}", exc_info=True)
        logger.debug(f"Published recorder event: {event.event_type} ({event.state.value})")
