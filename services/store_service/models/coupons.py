"""Store coupon model."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import CouponKind, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Coupon(Base):
    """Discount coupons. Codes are stored upper-case."""

    __tablename__ = "store_coupons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    kind: Mapped[CouponKind] = mapped_column(
        SAEnum(
            CouponKind,
            values_callable=enum_values,
            name="store_coupon_kind_enum",
        ),
        nullable=False,
    )
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    min_purchase: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    max_discount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )  # percentage coupons only

    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_to: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("valid_from <= valid_to", name="coupon_valid_window"),
        CheckConstraint("usage_count >= 0", name="coupon_usage_non_negative"),
        CheckConstraint(
            "usage_limit IS NULL OR usage_count <= usage_limit",
            name="coupon_usage_within_limit",
        ),
        CheckConstraint("value >= 0", name="coupon_value_non_negative"),
    )

    def __repr__(self):
        return f"<Coupon {self.code} used={self.usage_count}/{self.usage_limit}>"
