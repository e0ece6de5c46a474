"""
Deterministic alert rule table.

Rules are evaluated in the order listed. A rule fires when every condition
``(metric, operator, threshold)`` holds; operators are ``<``, ``<=``, ``>``,
``>=`` and ``==``. ``values`` maps message placeholders to metric names and
``message`` is a ``str.format`` template over those placeholders. Title,
impact and recommendation are static.

Bands sharing a metric are half-open and never overlap, e.g. EBE evolution:
below -30 is critical, from -30 (included) up to -15 (excluded) is warning.
"""

ALERT_RULES_VERSION = "2024.1"

ALERT_RULES = (
    # =========================================================================
    # Profitability
    # =========================================================================
    {
        "id": "RENT_001",
        "category": "profitability",
        "severity": "critical",
        "when": (("ebe_evolution_pct", "<", -30),),
        "values": {"decline": "ebe_evolution_abs_pct", "years": "years_analyzed"},
        "title": "Sharp EBE decline",
        "message": "EBE fell by {decline:.1f}% over {years} years",
        "impact": "Operating profitability is deteriorating quickly and the valuation basis is shrinking.",
        "recommendation": "Identify the causes of the decline (prices, costs, volumes) before any commitment.",
    },
    {
        "id": "RENT_002",
        "category": "profitability",
        "severity": "warning",
        "when": (("ebe_evolution_pct", ">=", -30), ("ebe_evolution_pct", "<", -15)),
        "values": {"decline": "ebe_evolution_abs_pct", "years": "years_analyzed"},
        "title": "EBE decline",
        "message": "EBE fell by {decline:.1f}% over {years} years",
        "impact": "Profitability is eroding and may weigh on debt repayment capacity.",
        "recommendation": "Analyse the cost structure and margin trend with the seller.",
    },
    {
        "id": "RENT_003",
        "category": "profitability",
        "severity": "warning",
        "when": (("ebe_margin_pct", ">", 0), ("ebe_margin_pct", "<", 5)),
        "values": {"margin": "ebe_margin_pct"},
        "title": "Low EBE margin",
        "message": "EBE margin of {margin:.1f}% of revenue",
        "impact": "A thin margin leaves little room to absorb a drop in activity or acquisition debt.",
        "recommendation": "Check the optimisation levers on purchases and payroll.",
    },
    {
        "id": "RENT_004",
        "category": "profitability",
        "severity": "critical",
        "when": (("ebe_margin_pct", "<", 0),),
        "values": {"margin": "ebe_margin_pct"},
        "title": "Negative EBE margin",
        "message": "EBE margin of {margin:.1f}% of revenue: operations destroy cash",
        "impact": "The business does not cover its operating costs.",
        "recommendation": "Require a credible turnaround plan or reconsider the acquisition.",
    },
    {
        "id": "RENT_005",
        "category": "profitability",
        "severity": "critical",
        "when": (("net_result", "<", 0),),
        "values": {"net_result": "net_result"},
        "title": "Net loss",
        "message": "Latest net result is {net_result:,.0f} EUR",
        "impact": "The business loses money after all charges.",
        "recommendation": "Separate recurring from exceptional items to understand the loss.",
    },
    {
        "id": "RENT_006",
        "category": "profitability",
        "severity": "critical",
        "when": (("cash_flow_capacity", "<", 0),),
        "values": {"capacity": "cash_flow_capacity"},
        "title": "Negative cash-flow capacity",
        "message": "Cash-flow capacity of {capacity:,.0f} EUR",
        "impact": "The business cannot finance investment or repay debt from operations.",
        "recommendation": "Budget additional equity and review the financing plan.",
    },
    {
        "id": "RENT_007",
        "category": "profitability",
        "severity": "warning",
        "when": (("ebe_margin_to_sector", "<", 0.7),),
        "values": {
            "margin": "ebe_margin_pct",
            "sector_margin": "sector_ebe_margin_pct",
            "sector": "sector_name",
        },
        "title": "EBE margin below sector",
        "message": "EBE margin of {margin:.1f}% against {sector_margin:.1f}% for {sector}",
        "impact": "The business underperforms comparable businesses.",
        "recommendation": "Benchmark prices, purchasing terms and staffing against the sector.",
    },
    # =========================================================================
    # Leverage
    # =========================================================================
    {
        "id": "DETTE_001",
        "category": "leverage",
        "severity": "critical",
        "when": (("leverage_pct", ">", 300),),
        "values": {"leverage": "leverage_pct"},
        "title": "Excessive leverage",
        "message": "Debt amounts to {leverage:.1f}% of equity",
        "impact": "The business is heavily dependent on its lenders.",
        "recommendation": "List every loan with its maturity and check early repayment conditions.",
    },
    {
        "id": "DETTE_002",
        "category": "leverage",
        "severity": "warning",
        "when": (("leverage_pct", ">", 200), ("leverage_pct", "<=", 300)),
        "values": {"leverage": "leverage_pct"},
        "title": "High leverage",
        "message": "Debt amounts to {leverage:.1f}% of equity",
        "impact": "Borrowing capacity is limited.",
        "recommendation": "Review the debt schedule and its weight on cash flow.",
    },
    {
        "id": "DETTE_003",
        "category": "leverage",
        "severity": "info",
        "when": (("leverage_pct", ">", 150), ("leverage_pct", "<=", 200)),
        "values": {"leverage": "leverage_pct"},
        "title": "Moderate leverage",
        "message": "Debt amounts to {leverage:.1f}% of equity",
        "impact": "Leverage is acceptable but deserves monitoring.",
        "recommendation": "Check that debt service fits the projected cash flow.",
    },
    {
        "id": "DETTE_004",
        "category": "leverage",
        "severity": "warning",
        "when": (("leverage_to_sector", ">", 1.5),),
        "values": {
            "leverage": "leverage_pct",
            "sector_leverage": "sector_leverage_pct",
            "sector": "sector_name",
        },
        "title": "Leverage above sector",
        "message": "Leverage of {leverage:.1f}% against {sector_leverage:.1f}% for {sector}",
        "impact": "The business is more indebted than comparable businesses.",
        "recommendation": "Understand what the debt financed and whether it is still productive.",
    },
    # =========================================================================
    # Growth
    # =========================================================================
    {
        "id": "CROIS_001",
        "category": "growth",
        "severity": "critical",
        "when": (("revenue_evolution_pct", "<", -20),),
        "values": {"decline": "revenue_evolution_abs_pct", "years": "years_analyzed"},
        "title": "Sharp revenue decline",
        "message": "Revenue fell by {decline:.1f}% over {years} years",
        "impact": "Activity is shrinking fast and future cash flows are uncertain.",
        "recommendation": "Investigate lost customers, competition and local market changes.",
    },
    {
        "id": "CROIS_002",
        "category": "growth",
        "severity": "warning",
        "when": (("revenue_evolution_pct", ">=", -20), ("revenue_evolution_pct", "<", -10)),
        "values": {"decline": "revenue_evolution_abs_pct", "years": "years_analyzed"},
        "title": "Revenue decline",
        "message": "Revenue fell by {decline:.1f}% over {years} years",
        "impact": "Activity is slowing down.",
        "recommendation": "Ask the seller for monthly revenue of the current year.",
    },
    {
        "id": "CROIS_003",
        "category": "growth",
        "severity": "warning",
        "when": (("trend", "==", "decline"),),
        "values": {},
        "title": "Declining overall trend",
        "message": "Revenue, EBE and net result trend downward over the analysed years",
        "impact": "The business is in a downward cycle.",
        "recommendation": "Build a business plan with conservative assumptions.",
    },
    {
        "id": "CROIS_004",
        "category": "growth",
        "severity": "info",
        "when": (("revenue_evolution_abs_pct", "<", 3), ("years_analyzed", ">=", 3)),
        "values": {"evolution": "revenue_evolution_pct", "years": "years_analyzed"},
        "title": "Stagnant revenue",
        "message": "Revenue changed by {evolution:.1f}% over {years} years",
        "impact": "Flat revenue means a real decline once inflation is accounted for.",
        "recommendation": "Identify growth levers for the takeover plan.",
    },
    # =========================================================================
    # Liquidity
    # =========================================================================
    {
        "id": "TRESO_001",
        "category": "liquidity",
        "severity": "critical",
        "when": (("customer_days", ">", 180),),
        "values": {"days": "customer_days"},
        "title": "Very long customer payment terms",
        "message": "Customers pay in {days:.0f} days on average",
        "impact": "Receivables tie up cash and may hide bad debts.",
        "recommendation": "Obtain the aged receivables balance and provision doubtful debts.",
    },
    {
        "id": "TRESO_002",
        "category": "liquidity",
        "severity": "warning",
        "when": (("customer_days", ">", 90), ("customer_days", "<=", 180)),
        "values": {"days": "customer_days"},
        "title": "Long customer payment terms",
        "message": "Customers pay in {days:.0f} days on average",
        "impact": "Cash is tied up in receivables.",
        "recommendation": "Review collection procedures and the main outstanding invoices.",
    },
    {
        "id": "TRESO_003",
        "category": "liquidity",
        "severity": "critical",
        "when": (("bfr_days", ">", 120),),
        "values": {"days": "bfr_days"},
        "title": "Very high working capital requirement",
        "message": "Working capital requirement of {days:.0f} days of revenue",
        "impact": "The operating cycle absorbs a large amount of cash.",
        "recommendation": "Plan working capital financing in the acquisition budget.",
    },
    {
        "id": "TRESO_004",
        "category": "liquidity",
        "severity": "warning",
        "when": (("bfr_days", ">", 60), ("bfr_days", "<=", 120)),
        "values": {"days": "bfr_days"},
        "title": "High working capital requirement",
        "message": "Working capital requirement of {days:.0f} days of revenue",
        "impact": "Cash needs grow with activity.",
        "recommendation": "Check inventory and receivables levels at the closing date.",
    },
    {
        "id": "TRESO_005",
        "category": "liquidity",
        "severity": "warning",
        "when": (("inventory_days", ">", 180),),
        "values": {"days": "inventory_days"},
        "title": "Slow inventory turnover",
        "message": "Inventory covers {days:.0f} days of revenue",
        "impact": "Part of the inventory may be obsolete or overvalued.",
        "recommendation": "Have the inventory counted and valued before the sale.",
    },
    # =========================================================================
    # Valuation
    # =========================================================================
    {
        "id": "VALO_001",
        "category": "valuation",
        "severity": "warning",
        "when": (("valuation_spread", ">", 2),),
        "values": {"low": "valuation_min", "high": "valuation_max"},
        "title": "Valuation methods disagree",
        "message": "Method values range from {low:,.0f} EUR to {high:,.0f} EUR",
        "impact": "The value of the business is uncertain.",
        "recommendation": "Retain the method that best reflects the business model and justify it.",
    },
    {
        "id": "VALO_002",
        "category": "valuation",
        "severity": "critical",
        "when": (("asking_price_to_high", ">", 1.2),),
        "values": {"price": "asking_price", "high": "valuation_high", "premium": "asking_price_premium_pct"},
        "title": "Asking price far above valuation",
        "message": "Asking price of {price:,.0f} EUR is {premium:.1f}% above the high valuation of {high:,.0f} EUR",
        "impact": "Paying this price would overpay for the business.",
        "recommendation": "Negotiate the price down using the valuation report.",
    },
    {
        "id": "VALO_003",
        "category": "valuation",
        "severity": "warning",
        "when": (("asking_price_to_high", ">", 1), ("asking_price_to_high", "<=", 1.2)),
        "values": {"price": "asking_price", "high": "valuation_high", "premium": "asking_price_premium_pct"},
        "title": "Asking price above valuation",
        "message": "Asking price of {price:,.0f} EUR is {premium:.1f}% above the high valuation of {high:,.0f} EUR",
        "impact": "There is room for negotiation.",
        "recommendation": "Use the valuation range as a negotiation basis.",
    },
    {
        "id": "VALO_004",
        "category": "valuation",
        "severity": "warning",
        "when": (("ebe_reference", "<", 0), ("ebe_method_value", ">", 0)),
        "values": {"ebe": "ebe_reference", "value": "ebe_method_value"},
        "title": "EBE valuation on a negative EBE",
        "message": "EBE method values the business at {value:,.0f} EUR on an EBE of {ebe:,.0f} EUR",
        "impact": "A multiple applied to a negative EBE is meaningless.",
        "recommendation": "Use the asset or revenue method instead.",
    },
    # =========================================================================
    # Real estate
    # =========================================================================
    {
        "id": "IMMO_001",
        "category": "real-estate",
        "severity": "critical",
        "when": (("rent_to_revenue_pct", ">", 30),),
        "values": {"rent": "annual_rent", "ratio": "rent_to_revenue_pct"},
        "title": "Excessive rent",
        "message": "Annual rent of {rent:,.0f} EUR ({ratio:.1f}% of revenue)",
        "impact": "Rent absorbs a large share of revenue and threatens profitability.",
        "recommendation": "Renegotiate the rent with the landlord before the sale.",
    },
    {
        "id": "IMMO_002",
        "category": "real-estate",
        "severity": "warning",
        "when": (("rent_to_revenue_pct", ">", 15), ("rent_to_revenue_pct", "<=", 30)),
        "values": {"rent": "annual_rent", "ratio": "rent_to_revenue_pct"},
        "title": "High rent",
        "message": "Annual rent of {rent:,.0f} EUR ({ratio:.1f}% of revenue)",
        "impact": "Rent weighs significantly on the cost structure.",
        "recommendation": "Compare the rent with market rents for similar premises.",
    },
    {
        "id": "IMMO_003",
        "category": "real-estate",
        "severity": "warning",
        "when": (("remaining_lease_months", ">", 0), ("remaining_lease_months", "<", 24)),
        "values": {"months": "remaining_lease_months"},
        "title": "Lease ending soon",
        "message": "Only {months:.0f} months remain on the commercial lease",
        "impact": "Renewal terms, including a rent increase, are unknown.",
        "recommendation": "Negotiate a lease renewal as a condition precedent to the sale.",
    },
    {
        "id": "IMMO_004",
        "category": "real-estate",
        "severity": "info",
        "when": (("lease_present", "==", False),),
        "values": {},
        "title": "No lease provided",
        "message": "The commercial lease has not been provided",
        "impact": "Rent, duration and transfer clauses cannot be assessed.",
        "recommendation": "Request a copy of the commercial lease and its amendments.",
    },
    # =========================================================================
    # Data quality
    # =========================================================================
    {
        "id": "DATA_001",
        "category": "data-quality",
        "severity": "critical",
        "when": (("has_balance_sheet", "==", False),),
        "values": {},
        "title": "Balance sheet missing",
        "message": "No balance sheet was provided",
        "impact": "Debt, equity and working capital cannot be analysed.",
        "recommendation": "Request the balance sheets of the last three fiscal years.",
    },
    {
        "id": "DATA_002",
        "category": "data-quality",
        "severity": "critical",
        "when": (("has_income_statement", "==", False),),
        "values": {},
        "title": "Income statement missing",
        "message": "No income statement was provided",
        "impact": "Revenue and profitability cannot be analysed.",
        "recommendation": "Request the income statements of the last three fiscal years.",
    },
    {
        "id": "DATA_003",
        "category": "data-quality",
        "severity": "warning",
        "when": (("years_analyzed", "<", 2),),
        "values": {"years": "years_analyzed"},
        "title": "Insufficient history",
        "message": "Only {years} fiscal year(s) could be analysed",
        "impact": "Trends cannot be assessed reliably.",
        "recommendation": "Request at least three years of annual accounts.",
    },
    {
        "id": "DATA_004",
        "category": "data-quality",
        "severity": "warning",
        "when": (("data_age_years", ">=", 2),),
        "values": {"latest": "latest_data_year", "as_of": "as_of_year", "age": "data_age_years"},
        "title": "Outdated accounts",
        "message": "Latest accounts are for {latest}, {age} years before {as_of}",
        "impact": "The current situation of the business may differ significantly.",
        "recommendation": "Request the most recent annual accounts and an interim statement.",
    },
    {
        "id": "DATA_005",
        "category": "data-quality",
        "severity": "critical",
        "when": (("latest_revenue_missing", "==", True),),
        "values": {},
        "title": "Revenue missing",
        "message": "Revenue of the latest fiscal year is zero or could not be read",
        "impact": "Every ratio relative to revenue is meaningless.",
        "recommendation": "Check the extraction of the income statement.",
    },
)
