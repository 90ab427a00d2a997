from __future__ import annotations

from decimal import Decimal
from typing import Optional

from fbar.config import AccountDefinition
from fbar.core.converter import adjust_for_ownership
from fbar.models import ConvertedMax, ReportRow, YearMax


class ReportRowBuilder:
    def build(
        self,
        year_max: YearMax,
        converted: ConvertedMax,
        ownership_fraction: Decimal,
        threshold_met: bool,
        account: Optional[AccountDefinition] = None,
    ) -> ReportRow:
        key = year_max.year_key
        row = ReportRow(
            canonical_id=key.canonical_id,
            display_name=account.label() if account is not None else key.canonical_id,
            year=key.year,
            ownership_adjusted_amount=adjust_for_ownership(converted.amount_reporting_currency, ownership_fraction),
            threshold_met=bool(threshold_met),
            ownership_fraction=ownership_fraction,
            max_balance=year_max.max_balance,
            source_currency=year_max.source_currency,
            max_date=year_max.max_date,
            amount_reporting_currency=converted.amount_reporting_currency,
            rate=converted.rate,
            rate_source=converted.rate_source,
        )
        if account is None:
            return row
        provider = account.provider
        return row.model_copy(
            update={
                "provider_name": provider.name if provider else "",
                "provider_address": provider.address if provider else "",
                "identifier1": account.identifier1,
                "identifier1_name": account.identifier1_name,
                "identifier2": account.identifier2,
                "identifier2_name": account.identifier2_name,
                "joint": account.is_joint,
                "joint_holder_names": list(account.joint_holder_names),
            }
        )
