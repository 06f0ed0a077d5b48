# storefront.utils.retry
"""
Politique de retry explicite (valeur) + exécution via tenacity.
- RetryPolicy: nombre max de tentatives, délai de base doublé à chaque retry, plafond.
- call_with_retry: applique la politique à un callable sans argument.
  La fonction `sleep` est injectable (tests sans attente réelle).
"""
from dataclasses import dataclass
from typing import Callable, List, Tuple, Type, TypeVar
import logging
import time

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 2.0
    max_delay: float = 8.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def delays(self) -> List[float]:
        """Délais appliqués entre les tentatives (2s, 4s, 8s... plafonnés)."""
        return [min(self.base_delay * 2 ** i, self.max_delay) for i in range(max(self.max_attempts - 1, 0))]


def _log_before_sleep(label: str):
    def _before_sleep(retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "%s failed (attempt %s), retry in %.1fs: %s",
            label, retry_state.attempt_number, delay, exc,
        )
    return _before_sleep


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "call",
) -> T:
    """
    Exécute func() selon la politique.
    - Seules les exceptions de policy.retry_on déclenchent un retry.
    - Après la dernière tentative, l'exception d'origine est relancée telle quelle.
    """
    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.base_delay, exp_base=2, max=policy.max_delay),
        retry=retry_if_exception_type(policy.retry_on),
        sleep=sleep,
        reraise=True,
        before_sleep=_log_before_sleep(label),
    )
    return retrying(func)
