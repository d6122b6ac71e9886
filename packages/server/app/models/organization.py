"""Organization model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)
    host: str = Field(nullable=False)
    subdomain: Optional[str] = None
    reply_to_email: str = Field(default="noreply", nullable=False)  # local part only

    @property
    def base_url(self) -> str:
        """External origin used for links in outbound email."""
        prefix = f"{self.subdomain}." if self.subdomain else ""
        return f"https://{prefix}{self.host}"

    @property
    def from_address(self) -> str:
        return f"{self.name} <{self.reply_to_email}@{self.host}>"
