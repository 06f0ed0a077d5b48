"""
Catalogue produits avec cache mémoire (une entrée, TTL 30 s, par process).
"""
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import logging
import threading
import time

from storefront.errors import InvalidArgument, NotFound

from .repository import ProductRepository

logger = logging.getLogger(__name__)


class ProductCatalog:
    def __init__(
        self,
        repository: ProductRepository,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository = repository
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._lock = threading.Lock()
        self._cache: Optional[Tuple[float, List[Dict[str, Any]]]] = None

    def list_products(self) -> Tuple[List[Dict[str, Any]], bool]:
        """
        Retourne (produits, cached).
        - Entrée valide si âge < ttl_seconds; sinon relecture de la base.
        - Une liste vide n'est pas mise en cache.
        """
        now = self.clock()
        with self._lock:
            if self._cache is not None and now - self._cache[0] < self.ttl_seconds:
                return self._cache[1], True
        products = self.repository.list_products()
        if products:
            with self._lock:
                self._cache = (now, products)
        return products, False

    def invalidate(self) -> None:
        with self._lock:
            self._cache = None

    def get_by_slug(self, slug: str) -> Dict[str, Any]:
        product = self.repository.get_by_slug(slug)
        if product is None:
            raise NotFound("Product not found")
        return product

    def get_prices(self, ids: Iterable[Any]) -> Dict[str, int]:
        return self.repository.get_prices(ids)

    def update_price(self, product_id: Any, price: Any) -> Dict[str, Any]:
        """
        Prix en centimes, entier > 0 (400 sinon), 404 si produit inconnu.
        Invalide le cache après succès.
        """
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price <= 0 or int(price) != price:
            raise InvalidArgument("Invalid price")
        product = self.repository.update_price(product_id, int(price))
        if product is None:
            raise NotFound("Product not found")
        self.invalidate()
        logger.info("product %s price updated to %s", product_id, int(price))
        return product
