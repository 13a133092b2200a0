"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from lensbook.adapters.payment_gateway import PaymentGateway, StripePaymentGateway
from lensbook.adapters.realtime_relay import HttpxRelayPublisher
from lensbook.adapters.supabase_booking_repository import SupabaseBookingRepository
from lensbook.adapters.supabase_checkout_token_repository import (
    SupabaseCheckoutTokenRepository,
)
from lensbook.adapters.supabase_delivery_repository import SupabaseDeliveryRepository
from lensbook.adapters.supabase_earning_repository import SupabaseEarningRepository
from lensbook.adapters.supabase_editing_repository import (
    SupabaseEditingRequestRepository,
    SupabaseEditingServiceRepository,
)
from lensbook.adapters.supabase_payee_repository import SupabasePayeeRepository
from lensbook.config import Settings, parse_timezone
from lensbook.services.bookings import BookingService
from lensbook.services.checkout_tokens import CheckoutTokenService
from lensbook.services.deliveries import DeliveryService
from lensbook.services.earnings import EarningsService
from lensbook.services.editing import EditingRequestService
from lensbook.services.events import EventFanout, EventPublisher, InMemoryEventBus


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    payment_gateway: PaymentGateway
    event_publisher: EventPublisher
    booking_service: BookingService
    earnings_service: EarningsService
    delivery_service: DeliveryService
    editing_service: EditingRequestService
    checkout_service: CheckoutTokenService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    payment_gateway = StripePaymentGateway(api_key=resolved_settings.payment_api_key)
    relay: HttpxRelayPublisher | None = None
    publisher: EventPublisher
    if resolved_settings.realtime_relay_url:
        relay = HttpxRelayPublisher.create(
            resolved_settings.realtime_relay_url,
            token=resolved_settings.realtime_relay_token,
        )
        publisher = relay
    else:
        publisher = InMemoryEventBus()
    events = EventFanout(publisher)

    earnings_service = EarningsService(SupabaseEarningRepository(supabase_client))
    booking_service = BookingService(
        store=SupabaseBookingRepository(supabase_client),
        rates=SupabasePayeeRepository(supabase_client),
        gateway=payment_gateway,
        earnings=earnings_service,
        events=events,
        currency=resolved_settings.currency,
        timezone=parse_timezone(resolved_settings.marketplace_timezone),
        customer_can_cancel_confirmed=resolved_settings.customer_can_cancel_confirmed,
    )
    delivery_service = DeliveryService(
        repository=SupabaseDeliveryRepository(supabase_client),
        booking_service=booking_service,
        earnings_service=earnings_service,
    )
    editing_service = EditingRequestService(
        repository=SupabaseEditingRequestRepository(supabase_client),
        configs=SupabaseEditingServiceRepository(supabase_client),
        booking_service=booking_service,
        earnings=earnings_service,
        gateway=payment_gateway,
        events=events,
        currency=resolved_settings.currency,
    )
    checkout_service = CheckoutTokenService(
        store=SupabaseCheckoutTokenRepository(supabase_client),
        booking_service=booking_service,
        ttl_seconds=resolved_settings.checkout_token_ttl_seconds,
    )

    async def close_resources() -> None:
        if relay is not None:
            await relay.close()

    return AppContainer(
        settings=resolved_settings,
        payment_gateway=payment_gateway,
        event_publisher=publisher,
        booking_service=booking_service,
        earnings_service=earnings_service,
        delivery_service=delivery_service,
        editing_service=editing_service,
        checkout_service=checkout_service,
        close_resources=close_resources,
    )
