"""The user (or system job) performing an operation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    user_id: str
    user_name: str | None = None

    @property
    def display_name(self) -> str:
        return self.user_name or self.user_id
