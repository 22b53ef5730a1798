"""B41 materiality workings, rendered from the period setup inputs."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from services.schedules.models import PeriodSetupDoc

PROFIT_RATE_PCT = 10.0
MIN_MATERIALITY = 1000

# (upper bound inclusive, rate %)
TURNOVER_BANDS = (
    (500_000, 4.0),
    (1_000_000, 2.5),
    (2_000_000, 2.0),
    (5_000_000, 1.5),
)
TURNOVER_TOP_RATE = 1.0

HEADING = "# **Materiality and tolerable error**"
DASH = "-"


@dataclass(frozen=True)
class MaterialityInputs:
    turnover_current: float | None = None
    turnover_prior: float | None = None
    net_profit_current: float | None = None
    net_profit_prior: float | None = None

    @classmethod
    def from_period_setup(cls, doc: PeriodSetupDoc) -> "MaterialityInputs":
        m = doc.materiality
        return cls(
            turnover_current=m.turnover.current,
            turnover_prior=m.turnover.prior,
            net_profit_current=m.net_profit.current,
            net_profit_prior=m.net_profit.prior,
        )


@dataclass(frozen=True)
class MaterialityFigures:
    turnover_rate_current: float | None
    turnover_rate_prior: float | None
    turnover_basis_current: float | None
    turnover_basis_prior: float | None
    profit_basis_current: float | None
    profit_basis_prior: float | None
    average: float | None
    materiality: int | None
    materiality_x1_5: int | None
    tolerable_error: int | None
    tolerable_error_half: int | None
    tolerable_error_quarter: int | None
    tolerable_error_tenth: int | None

    def as_dict(self) -> dict:
        return asdict(self)


def _round0(n: float) -> int:
    # half up, like a spreadsheet
    return int(math.floor(n + 0.5))


def turnover_rate(turnover: float) -> float:
    for upper, rate in TURNOVER_BANDS:
        if turnover <= upper:
            return rate
    return TURNOVER_TOP_RATE


def _pct(amount: float | None, rate: float | None) -> float | None:
    if amount is None or rate is None:
        return None
    return amount * rate / 100


def compute_materiality(inputs: MaterialityInputs) -> MaterialityFigures:
    rate_cur = turnover_rate(inputs.turnover_current) if inputs.turnover_current is not None else None
    rate_pri = turnover_rate(inputs.turnover_prior) if inputs.turnover_prior is not None else None
    t_cur = _pct(inputs.turnover_current, rate_cur)
    t_pri = _pct(inputs.turnover_prior, rate_pri)
    p_cur = _pct(inputs.net_profit_current, PROFIT_RATE_PCT)
    p_pri = _pct(inputs.net_profit_prior, PROFIT_RATE_PCT)

    present = [v for v in (t_cur, p_cur, t_pri, p_pri) if v is not None]
    average = sum(present) / len(present) if present else None

    materiality = max(_round0(average), MIN_MATERIALITY) if average is not None else None
    te = _round0(materiality * 0.5) if materiality is not None else None
    return MaterialityFigures(
        turnover_rate_current=rate_cur,
        turnover_rate_prior=rate_pri,
        turnover_basis_current=t_cur,
        turnover_basis_prior=t_pri,
        profit_basis_current=p_cur,
        profit_basis_prior=p_pri,
        average=average,
        materiality=materiality,
        materiality_x1_5=_round0(materiality * 1.5) if materiality is not None else None,
        tolerable_error=te,
        tolerable_error_half=_round0(te / 2) if te is not None else None,
        tolerable_error_quarter=_round0(te / 4) if te is not None else None,
        tolerable_error_tenth=_round0(te / 10) if te is not None else None,
    )


def format_gbp(amount: float | None, decimals: int = 0) -> str:
    if amount is None:
        return DASH
    sign = "-" if amount < 0 else ""
    return f"{sign}£{abs(amount):,.{decimals}f}"


def _gbp2(amount: float | None) -> str:
    return format_gbp(amount, 2)


def _rate(rate: float | None) -> str:
    return DASH if rate is None else f"{rate:.1f}%"


def render_materiality_markdown(inputs: MaterialityInputs) -> str:
    f = compute_materiality(inputs)
    profit_rate = f"{PROFIT_RATE_PCT:g}%"

    if f.materiality is None:
        return "\n".join([
            HEADING,
            "",
            "Enter turnover and/or net profit in **Period setup** to calculate materiality.",
            "",
            "## Inputs and workings",
            "",
            f"- Current turnover: {_gbp2(inputs.turnover_current)}",
            f"- Current net profit: {_gbp2(inputs.net_profit_current)}",
            f"- Prior turnover: {_gbp2(inputs.turnover_prior)}",
            f"- Prior net profit: {_gbp2(inputs.net_profit_prior)}",
        ])

    lines = [
        HEADING,
        "",
        "## Values calculated according to standard practice",
        "",
        f"**Materiality:** {format_gbp(f.materiality)}",
        "- Vouching limit (e.g. if petty cash turnover is below materiality, do not vouch).",
        "",
        f"**1½ × materiality:** {format_gbp(f.materiality_x1_5)}",
        "- Limit for straight-line HP interest.",
        "",
        f"**Tolerable error:** {format_gbp(f.tolerable_error)}",
        "",
        f"**½ tolerable error:** {format_gbp(f.tolerable_error_half)}",
        "- Control account differences; limit for expense variances; + provision for deferred taxation.",
        "",
        f"**¼ tolerable error:** {format_gbp(f.tolerable_error_quarter)}",
        "- Write off control account differences.",
        "",
        f"**1/10 tolerable error:** {format_gbp(f.tolerable_error_tenth)}",
        "- Ignore accruals and prepayments.",
        "",
        "---",
        "",
        "## Inputs and workings",
        "",
        f"- Current turnover basis ({_rate(f.turnover_rate_current)}): {_gbp2(f.turnover_basis_current)}",
        f"- Current net profit basis ({profit_rate}): {_gbp2(f.profit_basis_current)}",
        f"- Prior turnover basis ({_rate(f.turnover_rate_prior)}): {_gbp2(f.turnover_basis_prior)}",
        f"- Prior net profit basis ({profit_rate}): {_gbp2(f.profit_basis_prior)}",
        "",
        f"**Average of available values:** {_gbp2(f.average)} "
        f"(minimum materiality applied: {format_gbp(MIN_MATERIALITY)})",
        "",
        "_Note: Calculated according to the firm's standard approach. "
        "No departures are expected unless specifically documented._",
    ]
    return "\n".join(lines)


def render_from_period_setup(doc: PeriodSetupDoc) -> str:
    return render_materiality_markdown(MaterialityInputs.from_period_setup(doc))
