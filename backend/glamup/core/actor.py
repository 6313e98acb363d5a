"""The party performing a mutation on an appointment."""

from dataclasses import dataclass

from .enums import ActorKind


@dataclass(frozen=True)
class Actor:
    kind: ActorKind
    id: str

    @classmethod
    def client(cls, client_id: str) -> "Actor":
        return cls(ActorKind.CLIENT, client_id)

    @classmethod
    def business(cls, user_id: str) -> "Actor":
        return cls(ActorKind.BUSINESS, user_id)

    @property
    def is_client(self) -> bool:
        return self.kind == ActorKind.CLIENT

    @property
    def label(self) -> str:
        """Human form used in cancellation reasons ("Cancelled by client")."""
        return self.kind.value
