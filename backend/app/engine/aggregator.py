"""
Yearly totals from monthly PVGIS records.
"""

from decimal import Decimal

from app.models.pvgis import MonthlyRecord, ParsedResponse, ResultSet, YearlyTotal


def aggregate_yearly_total(monthly: list[MonthlyRecord]) -> YearlyTotal:
    """
    Sum each field across the twelve months, January first.

    Ed is a daily average, so its sum is not a yearly energy figure. The
    field is summed like the others regardless. A missing SDm counts as 0.
    Sums are exact over the shortest decimal form of each value, so twelve
    months of 0.1 total 1.2.
    """
    if len(monthly) != 12:
        raise ValueError(f"Expected 12 monthly records, got {len(monthly)}.")

    fields = ("Ed", "Em", "Hd", "Hm", "SDm")
    totals = dict.fromkeys(fields, Decimal(0))
    for record in sorted(monthly, key=lambda r: r.month):
        for field in fields:
            value = getattr(record, field)
            if value is not None:
                totals[field] += Decimal(repr(value))

    return YearlyTotal(**{field: float(total) for field, total in totals.items()})


def build_result_set(parsed: ParsedResponse) -> ResultSet:
    """Turn a complete parse into a ResultSet with its aggregated yearly total."""
    missing = parsed.missing_fields()
    if missing:
        raise ValueError(f"Cannot build a result set, missing: {', '.join(missing)}.")

    monthly = [parsed.monthly[month] for month in range(1, 13)]
    return ResultSet(
        monthly=monthly,
        yearly_average=parsed.yearly_average,
        yearly_total=aggregate_yearly_total(monthly),
        fixed_system_losses=parsed.fixed_system_losses,
        reported_total=parsed.reported_total,
    )
