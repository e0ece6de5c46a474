"""
Sector benchmark table keyed by NAF activity code.

Ratio names match ``RatioSet`` fields. Figures are sector averages for
small French businesses.
"""

BENCHMARK_TABLE_VERSION = "2024.1"

DEFAULT_SECTOR_CODE = "DEFAULT"

# Column order of every row below
RATIO_COLUMNS = (
    "gross_margin_pct",
    "ebe_margin_pct",
    "net_margin_pct",
    "value_added_rate_pct",
    "inventory_days",
    "customer_days",
    "supplier_days",
    "bfr_days",
    "leverage_pct",
)

# code: (sector name, ratios in RATIO_COLUMNS order)
SECTOR_BENCHMARKS = {
    "47.11": (
        "Commerce en magasin non spécialisé (supermarchés)",
        (22, 4.5, 1.8, 18, 20, 5, 45, -15, 120),
    ),
    "10.71": (
        "Boulangerie et boulangerie-pâtisserie",
        (65, 18, 8, 55, 3, 2, 30, -20, 80),
    ),
    "56.10": (
        "Restauration traditionnelle",
        (70, 12, 4, 60, 7, 3, 30, -15, 100),
    ),
    "56.30": (
        "Débits de boissons",
        (75, 15, 5, 65, 10, 2, 30, -12, 90),
    ),
    "96.02": (
        "Coiffure",
        (80, 20, 10, 70, 30, 1, 30, -10, 60),
    ),
    "47.7": (
        "Commerce de détail spécialisé (habillement, chaussures)",
        (50, 8, 3, 40, 90, 10, 60, 35, 110),
    ),
    "47.73": (
        "Commerce de détail de produits pharmaceutiques",
        (28, 10, 5, 25, 60, 15, 45, 25, 70),
    ),
    "55.10": (
        "Hôtels et hébergement similaire",
        (85, 25, 8, 75, 5, 10, 30, -5, 150),
    ),
    DEFAULT_SECTOR_CODE: (
        "Commerce et services (moyenne générale)",
        (45, 10, 3, 40, 45, 30, 45, 15, 100),
    ),
}
