from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class Email(BaseModel):
    """Notification message handed to the mail utility."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    to: Tuple[str, ...]
    sender: str = Field(alias="from")
    subject: str
    message: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
