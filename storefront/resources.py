"""
Conteneur des collaborateurs construits une fois par process (lifespan),
à partir d'un Settings. Les dépendances FastAPI les lisent sur app.state.
"""
from dataclasses import dataclass
import logging

from storefront.config import Settings
from storefront.infra.supabase_client import SupabaseProvider
from storefront.notifications.emails import EmailNotifier
from storefront.orders.repository import OrderRepository
from storefront.payments.service import PaymentService
from storefront.payments.stripe_client import TRANSIENT_ERRORS, StripeGateway
from storefront.products.repository import ProductRepository
from storefront.products.service import ProductCatalog
from storefront.utils.retry import RetryPolicy
from storefront.webhooks.projection import OrderProjector

logger = logging.getLogger(__name__)


@dataclass
class Resources:
    settings: Settings
    supabase: SupabaseProvider
    gateway: StripeGateway
    payments: PaymentService
    catalog: ProductCatalog
    orders: OrderRepository
    notifier: EmailNotifier
    projector: OrderProjector

    def close(self) -> None:
        self.supabase.close()
        self.catalog.invalidate()


def payment_retry_policy(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.payment_retry_attempts,
        base_delay=settings.payment_retry_base_delay,
        max_delay=settings.payment_retry_max_delay,
        retry_on=TRANSIENT_ERRORS,
    )


def build_resources(settings: Settings) -> Resources:
    supabase = SupabaseProvider(settings.supabase_url, settings.supabase_key)
    gateway = StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)
    orders = OrderRepository(supabase)
    notifier = EmailNotifier(
        api_key=settings.resend_api_key,
        sender=settings.email_sender,
        admin_email=settings.admin_email,
    )
    resources = Resources(
        settings=settings,
        supabase=supabase,
        gateway=gateway,
        payments=PaymentService(gateway, payment_retry_policy(settings)),
        catalog=ProductCatalog(ProductRepository(supabase), ttl_seconds=settings.product_cache_ttl_seconds),
        orders=orders,
        notifier=notifier,
        projector=OrderProjector(orders, notifier, shipping_cost=settings.effective_shipping),
    )
    logger.info(
        "resources ready (retry attempts=%s, shipping=%s, email=%s)",
        settings.payment_retry_attempts, settings.effective_shipping,
        "on" if settings.resend_api_key else "off",
    )
    return resources
