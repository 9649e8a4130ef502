"""
Fonctions utilitaires partagées par différents modules du projet.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Politique de ré-essai avec backoff exponentiel.

    Le n-ième ré-essai (à partir de 1) attend `min(base_delay * 2**n, max_delay)`
    secondes ; au total `max_retries + 1` tentatives sont effectuées.
    """
    max_retries: int = 5
    base_delay: float = 2.0
    max_delay: float = 60.0

    def delay_for(self, retry: int) -> float:
        return min(self.base_delay * (2 ** retry), self.max_delay)

    @classmethod
    def from_settings(cls, retry_config) -> "RetryPolicy":
        return cls(
            max_retries=retry_config.max_retries,
            base_delay=retry_config.base_delay,
            max_delay=retry_config.max_delay,
        )


async def retry_async(
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    should_retry: Callable[[Exception], bool],
    sleep: SleepFunc = asyncio.sleep,
    label: Optional[str] = None,
) -> T:
    """
    Ré-exécute une fonction asynchrone tant que l'erreur est jugée temporaire.

    Les erreurs non temporaires sont propagées immédiatement ; une fois les
    ré-essais épuisés, la dernière erreur est propagée.
    """
    retry = 0
    while True:
        try:
            return await func()
        except Exception as exc:
            if not should_retry(exc) or retry >= policy.max_retries:
                raise
            retry += 1
            delay = policy.delay_for(retry)
            logger.warning(
                "Limite de débit atteinte%s : pause de %.1fs avant le ré-essai %d/%d (%s)",
                f" pour {label}" if label else "",
                delay,
                retry,
                policy.max_retries,
                exc,
            )
            await sleep(delay)
