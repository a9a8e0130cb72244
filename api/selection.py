"""
Политики выбора ревьюверов из пула кандидатов.

Одна и та же политика используется при создании PR (до двух ревьюверов),
ручном переназначении и каскадной замене при массовой деактивации (по одному).
"""
import random

from django.conf import settings


class SelectionPolicy:
    """Выбирает до k кандидатов из пула без повторений"""

    def pick(self, pool, k: int) -> list:
        raise NotImplementedError


class RandomSelectionPolicy(SelectionPolicy):
    """
    Равномерный случайный выбор без возвращения.
    Источник случайности передается явно, чтобы тесты могли зафиксировать seed.
    """

    def __init__(self, rng: random.Random = None):
        self._rng = rng if rng is not None else random.Random()

    def pick(self, pool, k: int) -> list:
        candidates = list(pool)
        return self._rng.sample(candidates, min(k, len(candidates)))


class LowestFirstSelectionPolicy(SelectionPolicy):
    """Детерминированный выбор: кандидаты с наименьшими id"""

    def pick(self, pool, k: int) -> list:
        return sorted(pool)[:max(k, 0)]


_default_policy = None


def get_default_policy() -> SelectionPolicy:
    """
    Политика процесса по умолчанию: генератор создается и инициализируется
    один раз на процесс, а не на каждую транзакцию.
    """
    global _default_policy
    if _default_policy is None:
        seed = getattr(settings, 'REVIEWER_SELECTION_SEED', None)
        _default_policy = RandomSelectionPolicy(random.Random(seed))
    return _default_policy
