"""Plan catalog: the feature table, page/component maps and tier info.

The built-in catalog (``DEFAULT_CATALOG``) is the MedixPOS plan table.
Tiers are cumulative: a higher tier includes every feature of the tiers
below it.

* **Trial** -- 30-day evaluation with capped POS usage.
* **Lite** -- Customers, categories, basic reports, receipt settings.
* **Basic** -- Purchases, suppliers, returns, prescriptions, multi-user.
* **Pro** -- Audit logs, HR, hardware, full reporting, API access.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from medixpos.models import (
    BackupFrequency,
    FeatureCategory,
    FeatureConfig,
    FeatureLimitations,
    LicenseTier,
    ReportsAccess,
    SupportLevel,
    TierInfo,
)


class CatalogError(Exception):
    """Raised when a plan catalog is inconsistent or cannot be loaded."""


class PlanCatalog:
    """Immutable bundle of features, route/component maps and tier info.

    Feature ids are unique; every id referenced by the page and component
    maps must be a declared feature.
    """

    def __init__(
        self,
        features: Iterable[FeatureConfig],
        page_features: Mapping[str, Iterable[str]],
        component_features: Mapping[str, Iterable[str]],
        tier_info: Mapping[LicenseTier, TierInfo],
    ) -> None:
        self._features: dict[str, FeatureConfig] = {}
        for feature in features:
            if feature.id in self._features:
                raise CatalogError(f"Duplicate feature id '{feature.id}'")
            self._features[feature.id] = feature

        self._page_features = {
            route: tuple(ids) for route, ids in page_features.items()
        }
        self._component_features = {
            name: tuple(ids) for name, ids in component_features.items()
        }
        self._tier_info = dict(tier_info)
        self._check_references()

    def _check_references(self) -> None:
        for table, entries in (
            ("page", self._page_features),
            ("component", self._component_features),
        ):
            for key, ids in entries.items():
                unknown = [fid for fid in ids if fid not in self._features]
                if unknown:
                    raise CatalogError(
                        f"{table.capitalize()} '{key}' references unknown "
                        f"feature(s): {', '.join(unknown)}"
                    )

        missing = [t.value for t in LicenseTier if t not in self._tier_info]
        if missing:
            raise CatalogError(f"Missing tier info for: {', '.join(missing)}")

    @property
    def features(self) -> list[FeatureConfig]:
        """All features in declaration order."""
        return list(self._features.values())

    @property
    def page_features(self) -> dict[str, tuple[str, ...]]:
        return dict(self._page_features)

    @property
    def component_features(self) -> dict[str, tuple[str, ...]]:
        return dict(self._component_features)

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._features

    def get(self, feature_id: str) -> FeatureConfig | None:
        """Look up a feature by id. Returns None if not found."""
        return self._features.get(feature_id)

    def features_for_page(self, key: str) -> tuple[str, ...]:
        """Feature ids mapped to an exact page key (no normalization)."""
        return self._page_features.get(key, ())

    def features_for_component(self, name: str) -> tuple[str, ...]:
        return self._component_features.get(name, ())

    def tier_info(self, tier: LicenseTier) -> TierInfo:
        return self._tier_info[tier]


# --- Built-in MedixPOS plan table ---

FEATURE_PLANS: tuple[FeatureConfig, ...] = (
    # Core (always available)
    FeatureConfig(
        id="auth",
        name="User Authentication",
        description="Login and basic user management",
        category=FeatureCategory.CORE,
        required_tier=LicenseTier.TRIAL,
        is_core=True,
    ),
    FeatureConfig(
        id="dashboard",
        name="Basic Dashboard",
        description="Overview of business metrics",
        category=FeatureCategory.CORE,
        required_tier=LicenseTier.TRIAL,
        is_core=True,
    ),
    # Trial
    FeatureConfig(
        id="pos_basic",
        name="Basic Point of Sale",
        description="Simple sales transactions with basic receipt printing",
        category=FeatureCategory.SALES,
        required_tier=LicenseTier.TRIAL,
        limitations=FeatureLimitations(
            max_sales_per_day=20, max_products=100, max_customers=50,
        ),
    ),
    FeatureConfig(
        id="products_basic",
        name="Basic Product Management",
        description="Add/edit products with basic information",
        category=FeatureCategory.INVENTORY,
        required_tier=LicenseTier.TRIAL,
        limitations=FeatureLimitations(max_products=100),
    ),
    FeatureConfig(
        id="inventory_basic",
        name="Basic Inventory Tracking",
        description="Track stock quantities and low stock alerts",
        category=FeatureCategory.INVENTORY,
        required_tier=LicenseTier.TRIAL,
    ),
    FeatureConfig(
        id="sales_view",
        name="Sales History View",
        description="View recent sales transactions",
        category=FeatureCategory.SALES,
        required_tier=LicenseTier.TRIAL,
        limitations=FeatureLimitations(data_retention_days=7),
    ),
    # Lite
    FeatureConfig(
        id="customers_management",
        name="Customer Management",
        description="Add/edit customers and track purchase history",
        category=FeatureCategory.CUSTOMERS,
        required_tier=LicenseTier.LITE,
        limitations=FeatureLimitations(max_customers=500),
    ),
    FeatureConfig(
        id="categories_units",
        name="Categories & Units",
        description="Organize products by categories and measurement units",
        category=FeatureCategory.INVENTORY,
        required_tier=LicenseTier.LITE,
    ),
    FeatureConfig(
        id="basic_reports",
        name="Basic Reports",
        description="Daily sales and inventory reports",
        category=FeatureCategory.REPORTS,
        required_tier=LicenseTier.LITE,
        limitations=FeatureLimitations(
            reports_access=ReportsAccess.BASIC, data_retention_days=30,
        ),
    ),
    FeatureConfig(
        id="receipt_customization",
        name="Receipt Customization",
        description="Customize receipt format and business info",
        category=FeatureCategory.SALES,
        required_tier=LicenseTier.LITE,
    ),
    FeatureConfig(
        id="settings_basic",
        name="Basic Settings",
        description="Store settings, pricing, and notifications",
        category=FeatureCategory.CORE,
        required_tier=LicenseTier.LITE,
    ),
    # Basic
    FeatureConfig(
        id="purchases_management",
        name="Purchase Management",
        description="Manage supplier purchases and purchase orders",
        category=FeatureCategory.INVENTORY,
        required_tier=LicenseTier.BASIC,
    ),
    FeatureConfig(
        id="suppliers_management",
        name="Supplier Management",
        description="Add/edit suppliers and track payment history",
        category=FeatureCategory.INVENTORY,
        required_tier=LicenseTier.BASIC,
    ),
    FeatureConfig(
        id="returns_handling",
        name="Returns & Refunds",
        description="Handle product returns and customer refunds",
        category=FeatureCategory.SALES,
        required_tier=LicenseTier.BASIC,
    ),
    FeatureConfig(
        id="prescriptions",
        name="Prescription Management",
        description="Track prescriptions and medication dispensing",
        category=FeatureCategory.CUSTOMERS,
        required_tier=LicenseTier.BASIC,
    ),
    FeatureConfig(
        id="bank_accounts",
        name="Account Management",
        description="Manage bank accounts and cash flow",
        category=FeatureCategory.REPORTS,
        required_tier=LicenseTier.BASIC,
        limitations=FeatureLimitations(max_bank_accounts=5),
    ),
    FeatureConfig(
        id="advanced_reports",
        name="Advanced Reports",
        description="Profit/loss, sales trends, and inventory reports",
        category=FeatureCategory.REPORTS,
        required_tier=LicenseTier.BASIC,
        limitations=FeatureLimitations(
            reports_access=ReportsAccess.ADVANCED, data_retention_days=90,
        ),
    ),
    FeatureConfig(
        id="multi_users",
        name="Multi-User Support",
        description="Add multiple users with basic role management",
        category=FeatureCategory.ENTERPRISE,
        required_tier=LicenseTier.BASIC,
        limitations=FeatureLimitations(max_users=5),
    ),
    FeatureConfig(
        id="backup_weekly",
        name="Weekly Backups",
        description="Automated weekly database backups",
        category=FeatureCategory.ENTERPRISE,
        required_tier=LicenseTier.BASIC,
        limitations=FeatureLimitations(backup_frequency=BackupFrequency.WEEKLY),
    ),
    # Pro
    FeatureConfig(
        id="audit_logs",
        name="Audit Logs",
        description="Comprehensive activity logging and audit trails",
        category=FeatureCategory.ENTERPRISE,
        required_tier=LicenseTier.PRO,
    ),
    FeatureConfig(
        id="advanced_users",
        name="Advanced User Management",
        description="Role-based permissions and user activity tracking",
        category=FeatureCategory.ENTERPRISE,
        required_tier=LicenseTier.PRO,
        limitations=FeatureLimitations(max_users=25),
    ),
    FeatureConfig(
        id="attendance_salary",
        name="HR Management",
        description="Employee attendance tracking and salary management",
        category=FeatureCategory.ENTERPRISE,
        required_tier=LicenseTier.PRO,
    ),
    FeatureConfig(
        id="comprehensive_reports",
        name="Comprehensive Reporting",
        description="Full analytics, custom reports, and data insights",
        category=FeatureCategory.REPORTS,
        required_tier=LicenseTier.PRO,
        limitations=FeatureLimitations(
            reports_access=ReportsAccess.FULL, data_retention_days=365,
        ),
    ),
    FeatureConfig(
        id="advanced_inventory",
        name="Advanced Inventory",
        description="Batch tracking, expiry management, and damage tracking",
        category=FeatureCategory.INVENTORY,
        required_tier=LicenseTier.PRO,
    ),
    FeatureConfig(
        id="pos_advanced",
        name="Advanced POS Features",
        description="Barcode scanning, custom shortcuts, and advanced payment options",
        category=FeatureCategory.SALES,
        required_tier=LicenseTier.PRO,
    ),
    FeatureConfig(
        id="bulk_operations",
        name="Bulk Operations",
        description="Bulk import/export and batch processing",
        category=FeatureCategory.ADVANCED,
        required_tier=LicenseTier.PRO,
    ),
    FeatureConfig(
        id="hardware_integration",
        name="Hardware Integration",
        description="Receipt printers, barcode scanners, and POS hardware",
        category=FeatureCategory.ADVANCED,
        required_tier=LicenseTier.PRO,
    ),
    FeatureConfig(
        id="backup_daily",
        name="Daily Backups",
        description="Automated daily database backups with cloud storage",
        category=FeatureCategory.ENTERPRISE,
        required_tier=LicenseTier.PRO,
        limitations=FeatureLimitations(backup_frequency=BackupFrequency.DAILY),
    ),
    FeatureConfig(
        id="notifications_advanced",
        name="Advanced Notifications",
        description="Real-time alerts, email notifications, and custom triggers",
        category=FeatureCategory.ADVANCED,
        required_tier=LicenseTier.PRO,
    ),
    FeatureConfig(
        id="api_access",
        name="API Access",
        description="REST API for third-party integrations",
        category=FeatureCategory.ENTERPRISE,
        required_tier=LicenseTier.PRO,
    ),
    FeatureConfig(
        id="priority_support",
        name="Priority Support",
        description="Priority technical support and dedicated assistance",
        category=FeatureCategory.ENTERPRISE,
        required_tier=LicenseTier.PRO,
        limitations=FeatureLimitations(support_level=SupportLevel.PRIORITY),
    ),
)

PAGE_FEATURE_MAP: dict[str, tuple[str, ...]] = {
    "/": ("dashboard",),
    "/pos": ("pos_basic", "pos_advanced"),
    "/products": ("products_basic",),
    "/inventory": ("inventory_basic", "advanced_inventory"),
    "/sales": ("sales_view",),
    "/purchases": ("purchases_management",),
    "/returns": ("returns_handling",),
    "/suppliers": ("suppliers_management",),
    "/customers": ("customers_management",),
    "/prescriptions": ("prescriptions",),
    "/bank-accounts": ("bank_accounts",),
    "/reports": ("basic_reports", "advanced_reports", "comprehensive_reports"),
    "/users": ("multi_users", "advanced_users"),
    "/audit-logs": ("audit_logs",),
    "/settings": ("settings_basic",),
    "/categories-units": ("categories_units",),
    "/supplier-ledger": ("suppliers_management",),
}

COMPONENT_FEATURE_MAP: dict[str, tuple[str, ...]] = {
    # POS
    "BarcodeScanner": ("pos_advanced",),
    "AdvancedPaymentMethods": ("pos_advanced",),
    "CustomShortcuts": ("pos_advanced",),
    # Products
    "BulkImport": ("bulk_operations",),
    "ProductExport": ("bulk_operations",),
    "BarcodeGeneration": ("pos_advanced",),
    # Inventory
    "BatchTracking": ("advanced_inventory",),
    "ExpiryManagement": ("advanced_inventory",),
    "DamageTracking": ("advanced_inventory",),
    # Reports
    "AdvancedAnalytics": ("comprehensive_reports",),
    "CustomReports": ("comprehensive_reports",),
    "DataInsights": ("comprehensive_reports",),
    # Settings
    "HardwareSettings": ("hardware_integration",),
    "AdvancedNotifications": ("notifications_advanced",),
    "BackupSettings": ("backup_weekly", "backup_daily"),
    # Users
    "PermissionMatrix": ("advanced_users",),
    "AttendanceTracking": ("attendance_salary",),
    "SalaryManagement": ("attendance_salary",),
}

LICENSE_TIER_INFO: dict[LicenseTier, TierInfo] = {
    LicenseTier.TRIAL: TierInfo(
        name="Trial",
        description="30-day trial with basic features",
        color="#9e9e9e",
        features=[
            "Basic POS (20 sales/day)",
            "Up to 100 products",
            "Up to 50 customers",
            "Basic inventory tracking",
            "7-day data retention",
        ],
        limitations=[
            "30-day time limit",
            "Limited transactions",
            "No advanced features",
            "Community support only",
        ],
    ),
    LicenseTier.LITE: TierInfo(
        name="Lite",
        description="Perfect for small pharmacies",
        color="#4caf50",
        features=[
            "Customer management (500 customers)",
            "Categories & units organization",
            "Basic reports (30-day retention)",
            "Receipt customization",
            "Basic settings configuration",
        ],
        limitations=[
            "No purchase management",
            "Basic reporting only",
            "No multi-user support",
        ],
        price="$29/month",
    ),
    LicenseTier.BASIC: TierInfo(
        name="Basic",
        description="Standard pharmacy management",
        color="#2196f3",
        features=[
            "Purchase & supplier management",
            "Returns & refunds handling",
            "Prescription management",
            "Multi-user support (5 users)",
            "Advanced reports (90-day retention)",
            "Weekly automated backups",
        ],
        limitations=[
            "Limited to 5 users",
            "No audit logs",
            "No HR management",
            "Basic backup frequency",
        ],
        price="$59/month",
    ),
    LicenseTier.PRO: TierInfo(
        name="Professional",
        description="Advanced features for growing businesses",
        color="#ff9800",
        features=[
            "Complete audit trails",
            "Advanced user management (25 users)",
            "HR & attendance management",
            "Comprehensive reporting (365-day retention)",
            "Hardware integration support",
            "Daily automated backups",
            "API access for integrations",
            "Priority support",
        ],
        limitations=["Maximum 25 users"],
        price="$99/month",
    ),
}

DEFAULT_CATALOG = PlanCatalog(
    features=FEATURE_PLANS,
    page_features=PAGE_FEATURE_MAP,
    component_features=COMPONENT_FEATURE_MAP,
    tier_info=LICENSE_TIER_INFO,
)
