"""Pure commission arithmetic shared by documents, submissions and the API.

Every function takes and returns ``Decimal`` and never touches the database,
so re-running a calculation on the same inputs always yields the same totals.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Mapping

CENT = Decimal("0.01")
ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

# Defaults offered when a tier does not narrow the choices.
OP_PERCENT_OPTIONS = (Decimal("0.10"), Decimal("0.125"), Decimal("0.15"))
REP_PERCENT_OPTIONS = (Decimal("0.35"), Decimal("0.40"), Decimal("0.45"), Decimal("0.50"))

NEGATIVE_EXPENSE_FIELDS = ("neg_exp_1", "neg_exp_2", "neg_exp_3", "supplement_fees_expense")
POSITIVE_EXPENSE_FIELDS = ("pos_exp_1", "pos_exp_2", "pos_exp_3", "pos_exp_4")


def to_decimal(value, default: Decimal = ZERO) -> Decimal:
    """Coerce *value* to Decimal; ``None``/blank/garbage become *default*."""
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Commission document (O&P / profit split model)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentTotals:
    op_amount: Decimal
    contract_total_net: Decimal
    net_profit: Decimal
    rep_commission: Decimal
    company_profit: Decimal

    def as_dict(self) -> dict:
        return asdict(self)


def calculate_op_amount(gross_contract_total, op_percent) -> Decimal:
    return to_decimal(gross_contract_total) * to_decimal(op_percent)


def calculate_contract_total_net(gross_contract_total, op_percent) -> Decimal:
    gross = to_decimal(gross_contract_total)
    return gross - calculate_op_amount(gross, op_percent)


def calculate_net_profit(contract_total_net, material_cost, labor_cost, negative_expenses=(), positive_expenses=()) -> Decimal:
    """contract net - material - labor - negative expenses + positive expenses."""
    total = to_decimal(contract_total_net) - to_decimal(material_cost) - to_decimal(labor_cost)
    total -= sum((to_decimal(v) for v in negative_expenses), ZERO)
    total += sum((to_decimal(v) for v in positive_expenses), ZERO)
    return total


def calculate_rep_commission(net_profit, rep_profit_percent) -> Decimal:
    return to_decimal(net_profit) * to_decimal(rep_profit_percent)


def calculate_company_profit(op_amount, net_profit, rep_commission) -> Decimal:
    """The company keeps the O&P plus whatever profit the rep does not."""
    return to_decimal(op_amount) + (to_decimal(net_profit) - to_decimal(rep_commission))


def calculate_document_totals(data: Mapping) -> DocumentTotals:
    """Derive every computed field of a commission document from its inputs.

    Missing keys count as zero. Accepts a plain mapping so it can be fed
    serializer data, a model's ``__dict__`` or a test fixture alike.
    """
    gross = to_decimal(data.get("gross_contract_total"))
    op_percent = to_decimal(data.get("op_percent"))

    op_amount = calculate_op_amount(gross, op_percent)
    contract_total_net = gross - op_amount
    net_profit = calculate_net_profit(
        contract_total_net,
        data.get("material_cost"),
        data.get("labor_cost"),
        negative_expenses=[data.get(f) for f in NEGATIVE_EXPENSE_FIELDS],
        positive_expenses=[data.get(f) for f in POSITIVE_EXPENSE_FIELDS],
    )
    rep_commission = calculate_rep_commission(net_profit, data.get("rep_profit_percent"))
    company_profit = calculate_company_profit(op_amount, net_profit, rep_commission)

    return DocumentTotals(
        op_amount=money(op_amount),
        contract_total_net=money(contract_total_net),
        net_profit=money(net_profit),
        rep_commission=money(rep_commission),
        company_profit=money(company_profit),
    )


def validate_commission_document(data: Mapping) -> list[str]:
    """Return human-readable problems with a document's inputs (empty when valid)."""
    errors = []

    def _missing(key):
        value = data.get(key)
        return value is None or (isinstance(value, str) and not value.strip())

    def _number(key):
        value = data.get(key)
        if value is None or value == "":
            return None
        return to_decimal(value, default=None)

    if _missing("job_name_id"):
        errors.append("Job Name & ID is required")
    if _missing("job_date"):
        errors.append("Job Date is required")
    if _missing("sales_rep"):
        errors.append("Sales Rep is required")

    gross = _number("gross_contract_total")
    if gross is None or gross < ZERO:
        errors.append("Gross Contract Total must be >= 0")
    op_percent = _number("op_percent")
    if op_percent is None or not (ZERO <= op_percent <= ONE):
        errors.append("O&P must be between 0 and 1")
    material = _number("material_cost")
    if material is None or material < ZERO:
        errors.append("Material cost must be >= 0")
    labor = _number("labor_cost")
    if labor is None or labor < ZERO:
        errors.append("Labor cost must be >= 0")
    rate = _number("rep_profit_percent")
    if rate is None or not (ZERO <= rate <= ONE):
        errors.append("Commission Rate must be between 0 and 1")
    return errors


# ---------------------------------------------------------------------------
# Commission submission (worksheet model)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorksheetTotals:
    total_job_revenue: Decimal
    gross_commission: Decimal
    net_commission_owed: Decimal

    def as_dict(self) -> dict:
        return asdict(self)


def calculate_worksheet(
    *,
    contract_amount,
    supplements_approved=ZERO,
    commission_percentage=ZERO,
    advances_paid=ZERO,
    flat_fee_amount=None,
) -> WorksheetTotals:
    """Revenue, gross commission and what is still owed after advances.

    ``commission_percentage`` is a whole-number percent (15 means 15%).
    A flat fee, when given, replaces the percentage. The owed amount goes
    negative when advances exceed the commission.
    """
    revenue = to_decimal(contract_amount) + to_decimal(supplements_approved)
    if flat_fee_amount is not None and flat_fee_amount != "":
        gross = to_decimal(flat_fee_amount)
    else:
        gross = revenue * to_decimal(commission_percentage) / HUNDRED
    owed = gross - to_decimal(advances_paid)
    return WorksheetTotals(
        total_job_revenue=money(revenue),
        gross_commission=money(gross),
        net_commission_owed=money(owed),
    )


@dataclass(frozen=True)
class OverrideResult:
    override_amount: Decimal
    new_count: int
    phase_complete: bool


def calculate_override(net_commission_owed, approved_count: int, phase_complete: bool, *, rate, limit: int) -> OverrideResult:
    """Manager override on a rep's first *limit* approved commissions."""
    if phase_complete or approved_count >= limit:
        return OverrideResult(override_amount=money(ZERO), new_count=approved_count, phase_complete=True)
    new_count = approved_count + 1
    return OverrideResult(
        override_amount=money(to_decimal(net_commission_owed) * to_decimal(rate)),
        new_count=new_count,
        phase_complete=new_count >= limit,
    )


# ---------------------------------------------------------------------------
# Margin gate / tier drop
# ---------------------------------------------------------------------------

def calculate_margin(net_profit, gross_contract_total) -> Decimal:
    gross = to_decimal(gross_contract_total)
    if gross <= ZERO:
        return ZERO
    return to_decimal(net_profit) / gross


def calculate_tier_drops(margin, minimum_margin, step) -> int:
    """One full tier dropped for every *step* the margin falls below the minimum."""
    shortfall = to_decimal(minimum_margin) - to_decimal(margin)
    if shortfall <= ZERO:
        return 0
    return int((shortfall / to_decimal(step)).to_integral_value(rounding=ROUND_FLOOR))


def apply_tier_drop(current_split, allowed_splits: Iterable, drops: int) -> Decimal:
    """Move *drops* places down the sorted splits, never below the lowest."""
    ordered = sorted({to_decimal(s) for s in allowed_splits})
    current = to_decimal(current_split)
    if not ordered:
        return current
    if current not in ordered:
        ordered = sorted(set(ordered) | {current})
    index = max(0, ordered.index(current) - max(0, drops))
    return ordered[index]


# ---------------------------------------------------------------------------
# Profit split labels
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProfitSplit:
    op: Decimal
    rep: Decimal
    company: Decimal

    @property
    def label(self) -> str:
        return "/".join(_label_number(v) for v in (self.op, self.rep, self.company))


def _label_number(fraction: Decimal) -> str:
    value = (to_decimal(fraction) * HUNDRED).normalize()
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def generate_profit_split_options(op_percents: Iterable, rep_percents: Iterable) -> list[ProfitSplit]:
    options = []
    for op in op_percents:
        for rep in rep_percents:
            rep_d = to_decimal(rep)
            options.append(ProfitSplit(op=to_decimal(op), rep=rep_d, company=ONE - rep_d))
    return options


PROFIT_SPLIT_OPTIONS = tuple(generate_profit_split_options(OP_PERCENT_OPTIONS, REP_PERCENT_OPTIONS))

_LABEL_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)\s*$")


def parse_profit_split_label(label: str | None) -> ProfitSplit | None:
    """``"15/40/60"`` -> ProfitSplit(0.15, 0.40, 0.60); ``None`` when malformed."""
    match = _LABEL_RE.match(label or "")
    if not match:
        return None
    op, rep, company = (Decimal(part) / HUNDRED for part in match.groups())
    if rep + company != ONE or op > ONE:
        return None
    return ProfitSplit(op=op, rep=rep, company=company)


def filter_op_percent_options(allowed: Iterable | None) -> list[Decimal]:
    """Default O&P choices narrowed to a tier's allowed set (all when unset)."""
    if not allowed:
        return list(OP_PERCENT_OPTIONS)
    allowed_set = {to_decimal(a) for a in allowed}
    return [opt for opt in OP_PERCENT_OPTIONS if opt in allowed_set]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_currency(value) -> str:
    amount = money(value)
    sign = "−" if amount < ZERO else ""
    return f"{sign}${abs(amount):,.2f}"


def format_percent(value) -> str:
    return f"{(to_decimal(value) * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)}%"


def format_tier_percent(value) -> str:
    whole = (to_decimal(value) * HUNDRED).quantize(ONE, rounding=ROUND_HALF_UP)
    return f"{whole}%"


def parse_currency_input(value: str | None) -> Decimal:
    """Strip everything but digits, dot and minus; never returns a negative."""
    cleaned = re.sub(r"[^0-9.\-]", "", value or "")
    match = re.match(r"-?\d*\.?\d+", cleaned)
    if not match:
        return ZERO
    return max(ZERO, Decimal(match.group(0)))
