"""Analysis model: one row per company hostname."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base

# Bumping the namespace starts a fresh table; rows in older tables are never read again.
STORE_NAMESPACE = "v5"

STATUS_PENDING = "pending"
STATUS_DONE = "done"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Analysis(Base):
    """Competitive analysis state for one company hostname.

    status is 'pending' until the research webhook arrives, then 'done'.
    A done row with error set is a failed analysis and may be resubmitted.
    """

    __tablename__ = f"analyses_{STORE_NAMESPACE}"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'done')", name="ck_analyses_status"),
    )

    hostname: Mapped[str] = mapped_column(String(255), primary_key=True)
    company_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING)
    username: Mapped[str] = mapped_column(String(255), nullable=False, default="", index=True)
    profile_image_url: Mapped[str] = mapped_column(String(2048), nullable=False, default="")
    created_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utc_now_iso)
    visits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    result: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    business_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    industry_sector: Mapped[str | None] = mapped_column(Text, nullable=True)
    keywords: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_done(self) -> bool:
        return self.status == STATUS_DONE

    @property
    def is_successful(self) -> bool:
        """Done without error and with a stored result."""
        return self.status == STATUS_DONE and not self.error and bool(self.result)

    def __repr__(self) -> str:
        return f"<Analysis {self.hostname} status={self.status} error={bool(self.error)}>"
