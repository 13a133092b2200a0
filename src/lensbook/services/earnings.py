"""Earnings ledger: creation, release and payout bookkeeping."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from lensbook.domain.bookings import Booking
from lensbook.domain.earnings import (
    Earning,
    EarningSource,
    EarningStatus,
    EarningsSummary,
)
from lensbook.domain.editing import EditingRequest

_logger = logging.getLogger(__name__)


class EarningRepository(Protocol):
    """Persistence interface for earnings."""

    def create(  # noqa: PLR0913
        self,
        payee_id: UUID,
        source_type: EarningSource,
        source_id: UUID,
        gross_amount: Decimal,
        platform_fee: Decimal,
        net_amount: Decimal,
    ) -> Earning:
        """Create a pending earning and return it."""

    def get_by_id(self, earning_id: UUID) -> Earning | None:
        """Return an earning by id, if present."""

    def get_by_source(self, source_id: UUID) -> Earning | None:
        """Return the earning linked to a booking or editing request."""

    def list_by_payee(self, payee_id: UUID) -> list[Earning]:
        """Return a payee's earnings, newest first."""

    def compare_and_set_status(
        self,
        earning_id: UUID,
        expected: EarningStatus,
        new: EarningStatus,
        changed_at: datetime,
    ) -> Earning | None:
        """Set the status only if it still equals ``expected``."""


@dataclass
class EarningsService:
    """Application service for the payee earnings ledger."""

    repository: EarningRepository

    def create_for_booking(self, booking: Booking) -> Earning:
        """Create the single pending earning for a booking."""
        return self._create_once(
            payee_id=booking.payee_id,
            source_type=EarningSource.BOOKING,
            source_id=booking.id,
            gross_amount=booking.base_amount,
            platform_fee=booking.platform_fee,
            net_amount=booking.payee_earnings,
        )

    def create_for_editing_request(self, request: EditingRequest) -> Earning:
        """Create the single pending earning for an editing request."""
        return self._create_once(
            payee_id=request.payee_id,
            source_type=EarningSource.EDITING_REQUEST,
            source_id=request.id,
            gross_amount=request.base_amount,
            platform_fee=request.platform_fee,
            net_amount=request.payee_earnings,
        )

    def release(self, source_id: UUID) -> bool:
        """Make an earning payable; returns True only for the releasing call."""
        return self._transition(
            source_id, EarningStatus.PENDING, EarningStatus.RELEASED
        )

    def void(self, source_id: UUID) -> bool:
        """Void a pending earning whose purchase never reached delivery."""
        return self._transition(source_id, EarningStatus.PENDING, EarningStatus.VOID)

    def mark_paid(self, earning_id: UUID) -> Earning | None:
        """Record a payout for a released earning."""
        updated = self.repository.compare_and_set_status(
            earning_id,
            EarningStatus.RELEASED,
            EarningStatus.PAID,
            datetime.now(tz=UTC),
        )
        if updated:
            _logger.info("Earning %s paid out", earning_id)
        return updated

    def get_for_source(self, source_id: UUID) -> Earning | None:
        """Return the earning linked to a booking or editing request."""
        return self.repository.get_by_source(source_id)

    def list_for_payee(self, payee_id: UUID) -> list[Earning]:
        """Return a payee's earnings."""
        return self.repository.list_by_payee(payee_id)

    def summary(self, payee_id: UUID) -> EarningsSummary:
        """Return net totals per payout state, excluding voided entries."""
        totals = {status: Decimal("0.00") for status in EarningStatus}
        for earning in self.repository.list_by_payee(payee_id):
            totals[earning.status] += earning.net_amount
        return EarningsSummary(
            total=(
                totals[EarningStatus.PENDING]
                + totals[EarningStatus.RELEASED]
                + totals[EarningStatus.PAID]
            ),
            pending=totals[EarningStatus.PENDING],
            released=totals[EarningStatus.RELEASED],
            paid=totals[EarningStatus.PAID],
        )

    def _create_once(  # noqa: PLR0913
        self,
        payee_id: UUID,
        source_type: EarningSource,
        source_id: UUID,
        gross_amount: Decimal,
        platform_fee: Decimal,
        net_amount: Decimal,
    ) -> Earning:
        existing = self.repository.get_by_source(source_id)
        if existing:
            return existing
        return self.repository.create(
            payee_id=payee_id,
            source_type=source_type,
            source_id=source_id,
            gross_amount=gross_amount,
            platform_fee=platform_fee,
            net_amount=net_amount,
        )

    def _transition(
        self, source_id: UUID, expected: EarningStatus, new: EarningStatus
    ) -> bool:
        earning = self.repository.get_by_source(source_id)
        if earning is None:
            _logger.warning("No earning found for %s", source_id)
            return False
        updated = self.repository.compare_and_set_status(
            earning.id, expected, new, datetime.now(tz=UTC)
        )
        if updated is None:
            return False
        _logger.info("Earning %s for %s is now %s", earning.id, source_id, new)
        return True
