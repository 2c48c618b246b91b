"""Default chart of accounts and the posting roles that point into it."""

from __future__ import annotations

import re

from app.database.models import AccountType, FloatAccountType, SourceModule

DEFAULT_CHART: list[tuple[str, str, AccountType]] = [
    ("1001", "Cash in Bank - Operations", AccountType.ASSET),
    ("1003", "Petty Cash", AccountType.ASSET),
    ("1100", "Float Accounts", AccountType.ASSET),
    ("1200", "Accounts Receivable", AccountType.ASSET),
    ("1300", "E-Zwich Card Inventory", AccountType.ASSET),
    ("2001", "Accounts Payable", AccountType.LIABILITY),
    ("2100", "Customer Deposits", AccountType.LIABILITY),
    ("2500", "Jumia Collections Payable", AccountType.LIABILITY),
    ("3001", "Share Capital", AccountType.EQUITY),
    ("3100", "Retained Earnings", AccountType.EQUITY),
    ("3200", "Current Year Earnings", AccountType.EQUITY),
    ("3300", "Float Adjustments", AccountType.EQUITY),
    ("3400", "Other Funds", AccountType.EQUITY),
    ("4001", "MoMo Commission Revenue", AccountType.REVENUE),
    ("4002", "E-Zwich Commission Revenue", AccountType.REVENUE),
    ("4003", "Agency Banking Revenue", AccountType.REVENUE),
    ("4004", "Jumia Collection Revenue", AccountType.REVENUE),
    ("4005", "Power Sales Revenue", AccountType.REVENUE),
    ("4100", "Transaction Fee Revenue", AccountType.REVENUE),
    ("4300", "Other Commission Revenue", AccountType.REVENUE),
    ("5001", "Salaries Expense", AccountType.EXPENSE),
    ("5002", "Rent Expense", AccountType.EXPENSE),
    ("5003", "Office Supplies Expense", AccountType.EXPENSE),
    ("5004", "Insurance Expense", AccountType.EXPENSE),
    ("5005", "Utilities Expense", AccountType.EXPENSE),
    ("5006", "Depreciation Expense", AccountType.EXPENSE),
    ("5007", "Bank Charges", AccountType.EXPENSE),
    ("5008", "Travel Expense", AccountType.EXPENSE),
    ("5009", "Maintenance Expense", AccountType.EXPENSE),
    ("5010", "Marketing Expense", AccountType.EXPENSE),
    ("5011", "E-Zwich Card Cost", AccountType.EXPENSE),
    ("5099", "Miscellaneous Expense", AccountType.EXPENSE),
]

COMMISSION_REVENUE_CODES = {
    "mtn": "4001",
    "vodafone": "4001",
    "telecel": "4001",
    "airtel-tigo": "4001",
    "e-zwich": "4002",
    "agency-banking": "4003",
    "bank": "4003",
    "jumia": "4004",
    "vra": "4005",
    "ecg": "4005",
    "nedco": "4005",
    "other": "4300",
}

EXPENSE_CATEGORY_CODES = {
    "salaries": "5001",
    "rent": "5002",
    "office_supplies": "5003",
    "insurance": "5004",
    "utilities": "5005",
    "depreciation": "5006",
    "bank_charges": "5007",
    "travel": "5008",
    "maintenance": "5009",
    "marketing": "5010",
    "other": "5099",
}

EQUITY_LEDGER_CODES = {
    "share_capital": "3001",
    "retained_earnings": "3100",
    "other_fund": "3400",
}

# (source_module, mapping_type) -> chart code used when no mapping row exists.
DEFAULT_MAPPINGS: dict[tuple[str, str], str] = {
    (SourceModule.FLOAT_OPERATIONS.value, "initial"): "3001",
    (SourceModule.FLOAT_OPERATIONS.value, "adjustment"): "3300",
    (SourceModule.MOMO.value, "fee"): "4001",
    (SourceModule.AGENCY_BANKING.value, "fee"): "4003",
    (SourceModule.E_ZWICH.value, "fee"): "4002",
    (SourceModule.E_ZWICH.value, "card_fee"): "4002",
    (SourceModule.E_ZWICH.value, "card_inventory"): "1300",
    (SourceModule.E_ZWICH.value, "card_cost"): "5011",
    (SourceModule.POWER.value, "fee"): "4005",
    (SourceModule.JUMIA.value, "fee"): "4004",
    (SourceModule.JUMIA.value, "liability"): "2500",
    (SourceModule.COMMISSIONS.value, "receivable"): "1200",
}
DEFAULT_MAPPINGS.update(
    {(SourceModule.COMMISSIONS.value, f"revenue:{source}"): code for source, code in COMMISSION_REVENUE_CODES.items()}
)
DEFAULT_MAPPINGS.update(
    {(SourceModule.EXPENSES.value, category): code for category, code in EXPENSE_CATEGORY_CODES.items()}
)
DEFAULT_MAPPINGS.update(
    {(SourceModule.EQUITY.value, ledger): code for ledger, code in EQUITY_LEDGER_CODES.items()}
)

FLOAT_TYPE_CODES = {
    FloatAccountType.CASH_IN_TILL: "TILL",
    FloatAccountType.MOMO: "MOMO",
    FloatAccountType.AGENCY_BANKING: "AGB",
    FloatAccountType.E_ZWICH: "EZW",
    FloatAccountType.POWER: "PWR",
    FloatAccountType.JUMIA: "JUM",
}

# Float accounts created by branch initialization, one per provider.
STANDARD_FLOAT_PROVIDERS: dict[FloatAccountType, list[str]] = {
    FloatAccountType.CASH_IN_TILL: ["Cash"],
    FloatAccountType.MOMO: ["MTN", "Telecel", "Z-Pay"],
    FloatAccountType.AGENCY_BANKING: ["GCB"],
    FloatAccountType.E_ZWICH: ["E-Zwich"],
    FloatAccountType.POWER: ["ECG", "NEDCo"],
    FloatAccountType.JUMIA: ["Jumia"],
}


def float_gl_code(account_type: FloatAccountType, provider: str) -> str:
    """Build the branch-scoped GL code for a float account, e.g. ``1100-MOMO-MTN``."""

    slug = re.sub(r"[^A-Z0-9]+", "", provider.upper())[:16] or "GEN"
    return f"1100-{FLOAT_TYPE_CODES[account_type]}-{slug}"


def float_gl_name(account_type: FloatAccountType, provider: str) -> str:
    return f"{account_type.value.replace('-', ' ').title()} Float - {provider}"
