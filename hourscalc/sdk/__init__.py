"""Hours Calc SDK - Core functionality for hours and payment calculations."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    coerce_setting,
    get_data_path,
    get_state_path,
    load_profile_file,
    load_calculation_options,
    ConfigNotFoundError,
    SETTINGS_SCHEMA,
)

from .schemas import (
    HourlyRate,
    ClientRate,
    ProfitDistribution,
    Deduction,
    Profile,
    TimeEntry,
    CalculationOptions,
    CalculationResult,
    CalculationReport,
    ClientPayment,
    PaymentDistribution,
    DeductionLine,
    RevenueBreakdown,
    MANAGEMENT_FEE_RATE,
    CLIENT_RATE_FALLBACK_MULTIPLIER,
)

from .applied import AppliedState

from .validation import (
    validate_profile,
    validate_time_entry,
    find_recipient_cycle,
    ProfileValidationResult,
    ProfileValidationError,
    TimeEntryValidationError,
)

from .engine import calculate, untransferred_deductions

from .store import (
    HoursState,
    ImportResult,
    build_profile,
    save_profile,
    delete_profile,
    set_deduction_applied,
    add_time_entry,
    delete_time_entry,
    load_state,
    save_state,
    export_document,
    write_export,
    import_document,
    ProfileNotFoundError,
    EntryNotFoundError,
    DataImportError,
    EXPORT_VERSION,
)

from .report import (
    breakdown_rows,
    daily_rollup,
    format_currency,
    format_hours,
    write_report_csv,
)

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "set_setting",
    "coerce_setting",
    "get_data_path",
    "get_state_path",
    "load_profile_file",
    "load_calculation_options",
    "ConfigNotFoundError",
    "SETTINGS_SCHEMA",
    # Schemas
    "HourlyRate",
    "ClientRate",
    "ProfitDistribution",
    "Deduction",
    "Profile",
    "TimeEntry",
    "CalculationOptions",
    "CalculationResult",
    "CalculationReport",
    "ClientPayment",
    "PaymentDistribution",
    "DeductionLine",
    "RevenueBreakdown",
    "MANAGEMENT_FEE_RATE",
    "CLIENT_RATE_FALLBACK_MULTIPLIER",
    "AppliedState",
    # Validation
    "validate_profile",
    "validate_time_entry",
    "find_recipient_cycle",
    "ProfileValidationResult",
    "ProfileValidationError",
    "TimeEntryValidationError",
    # Engine
    "calculate",
    "untransferred_deductions",
    # Store
    "HoursState",
    "ImportResult",
    "build_profile",
    "save_profile",
    "delete_profile",
    "set_deduction_applied",
    "add_time_entry",
    "delete_time_entry",
    "load_state",
    "save_state",
    "export_document",
    "write_export",
    "import_document",
    "ProfileNotFoundError",
    "EntryNotFoundError",
    "DataImportError",
    "EXPORT_VERSION",
    # Report
    "breakdown_rows",
    "daily_rollup",
    "format_currency",
    "format_hours",
    "write_report_csv",
]
