"""Shared test fixtures."""

import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from lensbook.adapters.payment_gateway import PaymentGateway
from lensbook.config import Settings
from lensbook.containers import AppContainer
from lensbook.domain.bookings import (
    Booking,
    BookingDraft,
    BookingRequest,
    BookingStatus,
)
from lensbook.domain.deliveries import PhotoDelivery
from lensbook.domain.earnings import Earning, EarningSource, EarningStatus
from lensbook.domain.editing import (
    EditingRequest,
    EditingRequestDraft,
    EditingServiceConfig,
    EditingStatus,
)
from lensbook.domain.payees import PayeeRate
from lensbook.errors import DuplicateRequest, PaymentAuthorizationFailed
from lensbook.services.bookings import BookingService, BookingStore, RateLookup
from lensbook.services.checkout_tokens import CheckoutTokenService, InMemoryTokenStore
from lensbook.services.deliveries import DeliveryRepository, DeliveryService
from lensbook.services.earnings import EarningRepository, EarningsService
from lensbook.services.editing import (
    EditingRequestRepository,
    EditingRequestService,
    EditingServiceRepository,
)
from lensbook.services.events import EventFanout, InMemoryEventBus

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
CUSTOMER_ID = UUID("00000000-0000-0000-0000-00000000c001")
PAYEE_ID = UUID("00000000-0000-0000-0000-00000000b001")
OTHER_USER_ID = UUID("00000000-0000-0000-0000-00000000d001")


@dataclass
class FakeClock:
    """Controllable clock injected into services."""

    now: datetime = NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class InMemoryBookingStore(BookingStore):
    """In-memory booking store with atomic conditional updates."""

    clock: Callable[[], datetime] = field(default_factory=FakeClock)
    bookings: dict[UUID, Booking] = field(default_factory=dict)
    fail_create: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def create(self, draft: BookingDraft) -> Booking:
        if self.fail_create:
            raise RuntimeError("Failed to create booking")
        booking = Booking(
            id=uuid4(),
            customer_id=draft.customer_id,
            payee_id=draft.payee_id,
            duration=draft.duration,
            location=draft.location,
            scheduled_date=draft.scheduled_date,
            scheduled_time=draft.scheduled_time,
            base_amount=draft.fees.base_amount,
            customer_service_fee=draft.fees.customer_service_fee,
            total_amount=draft.fees.total_amount,
            platform_fee=draft.fees.platform_fee,
            payee_earnings=draft.fees.payee_earnings,
            payment_reference=draft.payment_reference,
            status=BookingStatus.PENDING,
            expires_at=draft.expires_at,
            created_at=self.clock(),
        )
        with self._lock:
            self.bookings[booking.id] = booking
        return booking

    def get_by_id(self, booking_id: UUID) -> Booking | None:
        return self.bookings.get(booking_id)

    def list_by_customer(self, customer_id: UUID) -> list[Booking]:
        return self._newest_first(
            b for b in self.bookings.values() if b.customer_id == customer_id
        )

    def list_by_payee(self, payee_id: UUID) -> list[Booking]:
        return self._newest_first(
            b for b in self.bookings.values() if b.payee_id == payee_id
        )

    def list_overdue_pending(
        self,
        now: datetime,
        customer_id: UUID | None = None,
        payee_id: UUID | None = None,
    ) -> list[Booking]:
        results = []
        for booking in list(self.bookings.values()):
            if booking.status != BookingStatus.PENDING:
                continue
            if customer_id is not None and booking.customer_id != customer_id:
                continue
            if payee_id is not None and booking.payee_id != payee_id:
                continue
            deadline = booking.expires_at or booking.created_at + timedelta(hours=24)
            if deadline <= now:
                results.append(booking)
        return results

    def compare_and_set_status(
        self, booking_id: UUID, expected: BookingStatus, new: BookingStatus
    ) -> Booking | None:
        with self._lock:
            booking = self.bookings.get(booking_id)
            if booking is None or booking.status != expected:
                return None
            updated = replace(booking, status=new)
            self.bookings[booking_id] = updated
            return updated

    def set_dismissed(self, booking_id: UUID, dismissed_at: datetime) -> Booking | None:
        with self._lock:
            booking = self.bookings.get(booking_id)
            if booking is None:
                return None
            updated = replace(booking, dismissed_at=dismissed_at)
            self.bookings[booking_id] = updated
            return updated

    @staticmethod
    def _newest_first(bookings) -> list[Booking]:
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)


@dataclass
class InMemoryRateLookup(RateLookup):
    rates: dict[UUID, PayeeRate] = field(default_factory=dict)

    def get_payee_rate(self, payee_id: UUID) -> PayeeRate | None:
        return self.rates.get(payee_id)


@dataclass
class InMemoryEarningRepository(EarningRepository):
    """In-memory earnings ledger for tests."""

    earnings: dict[UUID, Earning] = field(default_factory=dict)
    fail_create: bool = False
    fail_next_transition: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def create(  # noqa: PLR0913
        self,
        payee_id: UUID,
        source_type: EarningSource,
        source_id: UUID,
        gross_amount: Decimal,
        platform_fee: Decimal,
        net_amount: Decimal,
    ) -> Earning:
        if self.fail_create:
            raise RuntimeError("Failed to create earning")
        earning = Earning(
            id=uuid4(),
            payee_id=payee_id,
            source_type=source_type,
            source_id=source_id,
            gross_amount=gross_amount,
            platform_fee=platform_fee,
            net_amount=net_amount,
            status=EarningStatus.PENDING,
            created_at=NOW,
        )
        self.earnings[earning.id] = earning
        return earning

    def get_by_id(self, earning_id: UUID) -> Earning | None:
        return self.earnings.get(earning_id)

    def get_by_source(self, source_id: UUID) -> Earning | None:
        for earning in self.earnings.values():
            if earning.source_id == source_id:
                return earning
        return None

    def list_by_payee(self, payee_id: UUID) -> list[Earning]:
        return [e for e in self.earnings.values() if e.payee_id == payee_id]

    def compare_and_set_status(
        self,
        earning_id: UUID,
        expected: EarningStatus,
        new: EarningStatus,
        changed_at: datetime,
    ) -> Earning | None:
        if self.fail_next_transition:
            self.fail_next_transition = False
            raise RuntimeError("Failed to update earning")
        with self._lock:
            earning = self.earnings.get(earning_id)
            if earning is None or earning.status != expected:
                return None
            changes: dict[str, object] = {"status": new}
            if new == EarningStatus.RELEASED:
                changes["released_at"] = changed_at
            elif new == EarningStatus.PAID:
                changes["paid_at"] = changed_at
            updated = replace(earning, **changes)
            self.earnings[earning_id] = updated
            return updated


@dataclass
class InMemoryDeliveryRepository(DeliveryRepository):
    deliveries: list[PhotoDelivery] = field(default_factory=list)

    def create_delivery(
        self,
        booking_id: UUID,
        payee_id: UUID,
        photos: list[str],
        message: str | None,
    ) -> PhotoDelivery:
        delivery = PhotoDelivery(
            id=uuid4(),
            booking_id=booking_id,
            payee_id=payee_id,
            photos=photos,
            message=message,
            delivered_at=NOW,
        )
        self.deliveries.append(delivery)
        return delivery

    def list_by_booking(self, booking_id: UUID) -> list[PhotoDelivery]:
        return [d for d in self.deliveries if d.booking_id == booking_id]


@dataclass
class InMemoryEditingRequestRepository(EditingRequestRepository):
    """In-memory editing requests keyed uniquely by booking."""

    requests: dict[UUID, EditingRequest] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def create(self, draft: EditingRequestDraft) -> EditingRequest:
        with self._lock:
            if any(r.booking_id == draft.booking_id for r in self.requests.values()):
                raise DuplicateRequest("An editing request already exists")
            request = EditingRequest(
                id=uuid4(),
                booking_id=draft.booking_id,
                customer_id=draft.customer_id,
                payee_id=draft.payee_id,
                pricing_model=draft.pricing_model,
                photo_count=draft.photo_count,
                base_amount=draft.fees.base_amount,
                customer_service_fee=draft.fees.customer_service_fee,
                total_amount=draft.fees.total_amount,
                platform_fee=draft.fees.platform_fee,
                payee_earnings=draft.fees.payee_earnings,
                status=EditingStatus.REQUESTED,
                requested_at=NOW,
                payment_reference=draft.payment_reference,
                requested_photo_urls=draft.requested_photo_urls,
                customer_notes=draft.customer_notes,
            )
            self.requests[request.id] = request
            return request

    def get_by_id(self, request_id: UUID) -> EditingRequest | None:
        return self.requests.get(request_id)

    def get_by_booking(self, booking_id: UUID) -> EditingRequest | None:
        for request in self.requests.values():
            if request.booking_id == booking_id:
                return request
        return None

    def list_by_customer(self, customer_id: UUID) -> list[EditingRequest]:
        return [r for r in self.requests.values() if r.customer_id == customer_id]

    def list_by_payee(self, payee_id: UUID) -> list[EditingRequest]:
        return [r for r in self.requests.values() if r.payee_id == payee_id]

    def compare_and_set_status(
        self,
        request_id: UUID,
        expected: frozenset[EditingStatus],
        new: EditingStatus,
        changes: dict[str, object],
    ) -> EditingRequest | None:
        with self._lock:
            request = self.requests.get(request_id)
            if request is None or request.status not in expected:
                return None
            updated = replace(request, status=new, **changes)
            self.requests[request_id] = updated
            return updated

    def delete(self, request_id: UUID) -> None:
        with self._lock:
            self.requests.pop(request_id, None)


@dataclass
class InMemoryEditingServiceRepository(EditingServiceRepository):
    configs: dict[UUID, EditingServiceConfig] = field(default_factory=dict)

    def get_config(self, payee_id: UUID) -> EditingServiceConfig | None:
        return self.configs.get(payee_id)

    def upsert_config(self, config: EditingServiceConfig) -> EditingServiceConfig:
        self.configs[config.payee_id] = config
        return config


@dataclass
class FakePaymentGateway(PaymentGateway):
    """Fake gateway that records every call and can be told to fail."""

    calls: list[tuple[str, object]] = field(default_factory=list)
    authorize_error: Exception | None = None
    capture_error: Exception | None = None
    cancel_error: Exception | None = None
    on_capture: Callable[[], Awaitable[None]] | None = None
    _counter: int = 0

    async def authorize(
        self, amount_minor_units: int, currency: str, metadata: dict[str, str]
    ) -> str:
        self.calls.append(("authorize", amount_minor_units))
        if self.authorize_error:
            raise self.authorize_error
        self._counter += 1
        return f"pi_test_{self._counter}"

    async def capture(self, reference: str) -> None:
        self.calls.append(("capture", reference))
        if self.on_capture:
            await self.on_capture()
        if self.capture_error:
            raise self.capture_error

    async def cancel(self, reference: str) -> None:
        self.calls.append(("cancel", reference))
        if self.cancel_error:
            raise self.cancel_error

    async def refund(self, reference: str) -> None:
        self.calls.append(("refund", reference))

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]


@dataclass
class FailingPublisher:
    async def publish(self, topic: str, event: str, payload: dict[str, object]) -> None:
        raise RuntimeError("relay down")


def booking_request(
    scheduled_time: str = "13:00",
    scheduled_date: date = NOW.date(),
    duration: int = 2,
    payee_id: UUID = PAYEE_ID,
) -> BookingRequest:
    return BookingRequest(
        payee_id=payee_id,
        duration=duration,
        location="Golden Gate Park",
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        payment_api_key="sk_test_key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def booking_store(clock: FakeClock) -> InMemoryBookingStore:
    return InMemoryBookingStore(clock=clock)


@pytest.fixture
def rates() -> InMemoryRateLookup:
    return InMemoryRateLookup(
        rates={
            PAYEE_ID: PayeeRate(
                payee_id=PAYEE_ID, hourly_rate=Decimal("100"), is_available=True
            )
        }
    )


@pytest.fixture
def earning_repository() -> InMemoryEarningRepository:
    return InMemoryEarningRepository()


@pytest.fixture
def earnings_service(earning_repository: InMemoryEarningRepository) -> EarningsService:
    return EarningsService(earning_repository)


@pytest.fixture
def booking_service(  # noqa: PLR0913
    booking_store: InMemoryBookingStore,
    rates: InMemoryRateLookup,
    gateway: FakePaymentGateway,
    earnings_service: EarningsService,
    event_bus: InMemoryEventBus,
    clock: FakeClock,
) -> BookingService:
    return BookingService(
        store=booking_store,
        rates=rates,
        gateway=gateway,
        earnings=earnings_service,
        events=EventFanout(event_bus),
        clock=clock,
    )


@pytest.fixture
def delivery_service(
    booking_service: BookingService, earnings_service: EarningsService
) -> DeliveryService:
    return DeliveryService(
        repository=InMemoryDeliveryRepository(),
        booking_service=booking_service,
        earnings_service=earnings_service,
    )


@pytest.fixture
def editing_service(  # noqa: PLR0913
    booking_service: BookingService,
    earnings_service: EarningsService,
    gateway: FakePaymentGateway,
    event_bus: InMemoryEventBus,
    clock: FakeClock,
) -> EditingRequestService:
    return EditingRequestService(
        repository=InMemoryEditingRequestRepository(),
        configs=InMemoryEditingServiceRepository(),
        booking_service=booking_service,
        earnings=earnings_service,
        gateway=gateway,
        events=EventFanout(event_bus),
        clock=clock,
    )


@pytest.fixture
def checkout_service(
    booking_service: BookingService, clock: FakeClock
) -> CheckoutTokenService:
    return CheckoutTokenService(
        store=InMemoryTokenStore(),
        booking_service=booking_service,
        ttl_seconds=900,
        clock=clock,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    gateway: FakePaymentGateway,
    event_bus: InMemoryEventBus,
    booking_service: BookingService,
    earnings_service: EarningsService,
    delivery_service: DeliveryService,
    editing_service: EditingRequestService,
    checkout_service: CheckoutTokenService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        payment_gateway=gateway,
        event_publisher=event_bus,
        booking_service=booking_service,
        earnings_service=earnings_service,
        delivery_service=delivery_service,
        editing_service=editing_service,
        checkout_service=checkout_service,
        close_resources=close_resources,
    )


def authorization_failure() -> PaymentAuthorizationFailed:
    return PaymentAuthorizationFailed("Card declined", code="authorization_failed")
