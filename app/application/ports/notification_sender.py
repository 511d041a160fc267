from abc import ABC, abstractmethod


class NotificationSenderPort(ABC):
    @abstractmethod
    def send_email(self, to: list[str], subject: str, html: str) -> None:
        raise NotImplementedError
