from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Callable, Iterable, Optional

from fbar.models import ConvertedMax, YearKey
from fbar.registry import AccountRegistry


class ThresholdEvaluator:
    """
    The filing threshold is tested against the sum over all participating accounts for a year; the
    outcome is then applied to every account of that year, participant or not.
    """

    def __init__(
        self,
        threshold: Decimal,
        registry: Optional[AccountRegistry] = None,
        *,
        is_participant: Optional[Callable[[str], bool]] = None,
    ):
        self.threshold = threshold
        if is_participant is not None:
            self._is_participant = is_participant
        elif registry is not None:
            self._is_participant = lambda cid: registry.get(cid).threshold_participant
        else:
            self._is_participant = lambda cid: True

    def participant_total(self, converted_maxima_for_year: Iterable[ConvertedMax]) -> Decimal:
        total = Decimal("0")
        for c in converted_maxima_for_year:
            if self._is_participant(c.year_key.canonical_id):
                total += c.ownership_adjusted_amount
        return total

    def evaluate(self, year: int, converted_maxima_for_year: Iterable[ConvertedMax]) -> dict[str, bool]:
        items = [c for c in converted_maxima_for_year if c.year_key.year == year]
        met = self.participant_total(items) >= self.threshold
        return {c.year_key.canonical_id: met for c in items}

    def evaluate_all(self, converted: Iterable[ConvertedMax]) -> tuple[dict[YearKey, bool], dict[int, Decimal]]:
        # First pass: group per year. Second pass: one flag per year applied to its rows.
        by_year: dict[int, list[ConvertedMax]] = defaultdict(list)
        for c in converted:
            by_year[c.year_key.year].append(c)
        flags: dict[YearKey, bool] = {}
        totals: dict[int, Decimal] = {}
        for year in sorted(by_year):
            items = by_year[year]
            totals[year] = self.participant_total(items)
            for cid, met in self.evaluate(year, items).items():
                flags[YearKey(canonical_id=cid, year=year)] = met
        return flags, totals
