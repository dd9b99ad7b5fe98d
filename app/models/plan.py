"""Plan model - purchasable subscription offerings."""

import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import String, DateTime, Integer, Boolean, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.fsm.states import BillingInterval


class Plan(Base):
    """
    Purchasable plan with a price and billing cadence.
    Immutable after creation except for the `active` flag.
    """

    __tablename__ = "plans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # URL slug used by the subscription page
    slug: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Price in the minor currency unit (paise)
    price_in_paise: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    billing_interval: Mapped[str] = mapped_column(
        String(20),
        default=BillingInterval.MONTHLY.value,
        nullable=False,
    )

    # Fixed window for `once` plans; null with `once` means lifetime
    duration_days: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    # Exam unlocked by this plan (creates an enrollment on purchase)
    exam_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("exams.id", ondelete="SET NULL"),
        nullable=True,
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Marketing bullet points shown on the plan page
    features: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Plan {self.slug} {self.price_in_paise} {self.billing_interval}>"
