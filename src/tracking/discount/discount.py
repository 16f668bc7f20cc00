"""Discount aggregate: time-boxed percentage discounts per product.

A discount is active while ``start_date <= at <= end_date`` (both bounds
inclusive). When several discounts are active for the same product the
highest percentage wins; ties go to the most recently started, then the
most recently created, then the highest id, so the choice never depends on
store iteration order.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, String
from protean.utils.globals import current_domain

from tracking.domain import tracking
from tracking.utils.clock import parse_iso, utc_now


@tracking.aggregate
class Discount:
    product_id = String(required=True, max_length=255)
    discount_percentage = Float(required=True, min_value=0.0, max_value=100.0)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    created_at = DateTime()

    @invariant.post
    def window_must_not_be_inverted(self):
        if self.start_date and self.end_date and parse_iso(self.end_date) < parse_iso(self.start_date):
            raise ValidationError({"end_date": ["End date must not be before start date"]})

    @classmethod
    def create(cls, product_id, discount_percentage, start_date, end_date):
        return cls(
            product_id=product_id,
            discount_percentage=discount_percentage,
            start_date=start_date,
            end_date=end_date,
            created_at=utc_now(),
        )

    def is_active(self, at: datetime | None = None) -> bool:
        at = parse_iso(at) if at is not None else utc_now()
        return parse_iso(self.start_date) <= at <= parse_iso(self.end_date)


def _priority(discount: Discount):
    created_at = parse_iso(discount.created_at) or datetime.min.replace(tzinfo=UTC)
    return (
        discount.discount_percentage,
        parse_iso(discount.start_date),
        created_at,
        str(discount.id),
    )


def select_discount(discounts: Iterable[Discount], product_id: str, at: datetime | None = None) -> Discount | None:
    """The discount that applies to ``product_id`` at ``at``, or None."""
    candidates = [d for d in discounts if d.product_id == product_id and d.is_active(at)]
    if not candidates:
        return None
    return max(candidates, key=_priority)


def active_discount_for(product_id: str, at: datetime | None = None) -> Discount | None:
    repo = current_domain.repository_for(Discount)
    discounts = repo._dao.query.filter(product_id=product_id).all().items
    return select_discount(discounts, product_id, at)


def discount_amount(price: float, percentage: float) -> float:
    return price * (float(percentage) / 100.0)


def discounted_price(price: float, percentage: float) -> float:
    return price * (1 - float(percentage) / 100.0)
