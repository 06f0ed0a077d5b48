# storefront.config
"""
Configuration centrale du service storefront.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Construit un objet Settings immuable, une fois par process (pas d'état global mutable)
- Normalise les secrets/URLs (Stripe, Supabase), CORS/hosts, paramètres checkout et retry
- missing_required() liste les secrets obligatoires absents (erreur fatale au démarrage)
"""
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import List, Optional
import os

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

REQUIRED_ENV = ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "SUPABASE_URL", "SUPABASE_KEY")


def _clean_env(v: Optional[str]) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")


def _split_csv(v: str) -> List[str]:
    return [x.strip() for x in (v or "").split(",") if x.strip()]


def _flag(v: Optional[str], default: bool = False) -> bool:
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


def _normalize_supabase_url(url: str) -> str:
    # SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
    if url and not url.startswith("http"):
        url = "https://" + url
    return url.rstrip("/")


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_public_key: str = ""
    stripe_timeout_seconds: float = 20.0

    supabase_url: str = ""
    supabase_key: str = ""

    environment: str = "production"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    allowed_hosts: List[str] = field(default_factory=lambda: ["*"])

    # Fallback quand la requête n'a pas d'en-tête Origin
    base_url: str = "http://localhost:3000"
    checkout_success_path: str = "/checkout/success"
    checkout_cancel_path: str = "/cart"

    shipping_cost: Decimal = Decimal("5.95")
    free_shipping: bool = False
    product_cache_ttl_seconds: float = 30.0

    resend_api_key: str = ""
    email_sender: str = "Storefront <orders@example.com>"
    admin_email: str = ""
    admin_secret_hash: str = ""

    rate_limit_enabled: bool = True
    rate_limit_redis_url: str = "redis://127.0.0.1:6379/0"
    local_rate_limit_fallback: bool = False

    payment_retry_attempts: int = 3
    payment_retry_base_delay: float = 2.0
    payment_retry_max_delay: float = 8.0

    # Serveur (python -m storefront)
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    log_level: str = "info"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def effective_shipping(self) -> Decimal:
        return Decimal("0.00") if self.free_shipping else self.shipping_cost

    def missing_required(self) -> List[str]:
        values = {
            "STRIPE_SECRET_KEY": self.stripe_secret_key,
            "STRIPE_WEBHOOK_SECRET": self.stripe_webhook_secret,
            "SUPABASE_URL": self.supabase_url,
            "SUPABASE_KEY": self.supabase_key,
        }
        return [name for name in REQUIRED_ENV if not values[name]]


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """
    Lit l'environnement (après chargement de .env) et retourne un Settings.
    - SUPABASE_KEY: la clé service est préférée (écritures webhook), anon en fallback.
    - APP_ENV (ou NODE_ENV) pilote la verbosité des erreurs.
    """
    load_dotenv(dotenv_path=env_path or ENV_PATH, override=False)
    env = os.getenv

    supabase_key = _clean_env(
        env("SUPABASE_SERVICE_KEY") or env("SUPABASE_KEY") or env("SUPABASE_ANON_KEY")
    )
    return Settings(
        stripe_secret_key=_clean_env(env("STRIPE_SECRET_KEY")),
        stripe_webhook_secret=_clean_env(env("STRIPE_WEBHOOK_SECRET")),
        stripe_public_key=_clean_env(env("STRIPE_PUBLIC_KEY")),
        stripe_timeout_seconds=float(env("STRIPE_TIMEOUT_SECONDS", "20")),
        supabase_url=_normalize_supabase_url(_clean_env(env("SUPABASE_URL"))),
        supabase_key=supabase_key,
        environment=_clean_env(env("APP_ENV") or env("NODE_ENV") or "production"),
        cors_origins=_split_csv(env("CORS_ORIGINS", "*")),
        allowed_hosts=_split_csv(env("ALLOWED_HOSTS", "*")),
        base_url=_clean_env(env("BASE_URL") or "http://localhost:3000").rstrip("/"),
        checkout_success_path=env("CHECKOUT_SUCCESS_PATH", "/checkout/success"),
        checkout_cancel_path=env("CHECKOUT_CANCEL_PATH", "/cart"),
        shipping_cost=Decimal(_clean_env(env("SHIPPING_COST")) or "5.95"),
        free_shipping=_flag(env("FREE_SHIPPING")),
        product_cache_ttl_seconds=float(env("PRODUCT_CACHE_TTL_SECONDS", "30")),
        resend_api_key=_clean_env(env("RESEND_API_KEY")),
        email_sender=env("EMAIL_SENDER", "Storefront <orders@example.com>"),
        admin_email=_clean_env(env("ADMIN_EMAIL")),
        admin_secret_hash=_clean_env(env("ADMIN_SECRET_HASH")),
        rate_limit_enabled=not _flag(env("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")),
        rate_limit_redis_url=env("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0"),
        local_rate_limit_fallback=_flag(env("LOCAL_RATE_LIMIT_FALLBACK")),
        payment_retry_attempts=int(env("PAYMENT_RETRY_ATTEMPTS", "3")),
        payment_retry_base_delay=float(env("PAYMENT_RETRY_BASE_DELAY", "2")),
        payment_retry_max_delay=float(env("PAYMENT_RETRY_MAX_DELAY", "8")),
        host=_clean_env(env("HOST")) or "0.0.0.0",
        port=int(_clean_env(env("PORT")) or 8000),
        reload=_flag(env("UVICORN_RELOAD")),
        log_level=(_clean_env(env("LOG_LEVEL")) or "info").lower(),
    )
