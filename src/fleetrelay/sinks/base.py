"""
Notification sink interface
"""

from abc import ABC, abstractmethod

from ..core.schemas import NotificationDefinition, NotificationMessage


class NotificationSink(ABC):
    """
    Forwards a rendered notification to the external notification service.

    A sink is called at most once per coordinator pass and is never retried
    by the coordinator, so implementations must not retry non-idempotent
    requests either.
    """

    @abstractmethod
    async def send(
        self,
        definition: NotificationDefinition,
        firing: bool,
        target_id: str,
        message: NotificationMessage
    ) -> None:
        """
        Deliver a notification for a target.

        Raises:
            SinkError: If the service rejected or could not receive it
        """

    async def close(self) -> None:
        """Release sink resources"""
