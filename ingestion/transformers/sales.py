"""
Steam detailed-sales lines -> steam_sales
"""

from typing import Any, Dict, List, Tuple
from ingestion.transformers.normalizer import key_part, parse_day, to_float, to_int
from schemas.records import SteamSaleRecord
from core.exceptions import NormalizationError


def normalize_sale_line(line: Dict[str, Any]) -> SteamSaleRecord:
    """
    Field defaults:
    - app_id: primary_appid, then appid, then packageid
    - country, currency: "" when absent (key columns)
    - units, refunds, net_units, gross_revenue, net_revenue: 0 when absent
    """
    day = parse_day(line.get("date"))
    app_id = line.get("primary_appid") or line.get("appid") or line.get("packageid")
    if day is None or not app_id:
        raise NormalizationError(
            "Sales line without date or app",
            context={"source": "steam", "record_id": line.get("id")}
        )

    return SteamSaleRecord(
        date=day,
        app_id=str(app_id),
        country=key_part(line.get("country_code")),
        currency=key_part(line.get("currency")),
        units=to_int(line.get("gross_units_sold")),
        gross_revenue=to_float(line.get("gross_sales_usd")),
        refunds=to_int(line.get("gross_units_returned")),
        net_units=to_int(line.get("net_units_sold")),
        net_revenue=to_float(line.get("net_sales_usd")),
        source="api",
        raw=line,
    )


def aggregate_sales(records: List[SteamSaleRecord]) -> List[SteamSaleRecord]:
    """
    Sum lines sharing (date, app_id, country, currency).

    One key can cover several packages or platforms; writing them one by
    one would let the last line overwrite the others.
    """
    grouped: Dict[Tuple, List[SteamSaleRecord]] = {}
    for record in records:
        grouped.setdefault(record.key(), []).append(record)

    aggregated = []
    for lines in grouped.values():
        first = lines[0]
        aggregated.append(first.model_copy(update={
            "units": sum(r.units for r in lines),
            "gross_revenue": round(sum(r.gross_revenue for r in lines), 4),
            "refunds": sum(r.refunds for r in lines),
            "net_units": sum(r.net_units for r in lines),
            "net_revenue": round(sum(r.net_revenue for r in lines), 4),
            "raw": {"lines": [r.raw for r in lines]},
        }))
    return aggregated
