"""
Two-Stage Import Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - STRUCTURE:
- Valid JSON
- Top level is an object
- `profiles` is a list, `activeProfile` is a string
- `profileData` (if present) is an object
A failure here rejects the whole import. Nothing is written.

STAGE 2 - COERCION:
- Missing collections become empty lists
- Missing ids are generated
- Date-times are cut down to dates
- The older split-array layout (income / oneTimeIncomes / expenses /
  payments / oneTimePayments) is converted to unified transactions
- Entries that cannot be repaired are dropped
Every repair is reported as a ValidationIssue so the user can see what
changed.

WHY TWO STAGES:
1. A wrong file (not an export at all) should fail loudly
2. An old or hand-edited export should still load
3. The same stage-2 coercion is reused when reading profiles from the
   local store, so a damaged document never crashes the dashboard
"""

import json
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from fintrack.models.appdata import (
    AppBundle,
    AppPreferences,
    ValidationIssue,
    ValidationResult,
)
from fintrack.models.finance import (
    ProfileData,
    SavingsAccount,
    SavingsGoal,
    Transaction,
)


_TRANSACTION_ADAPTER = TypeAdapter(Transaction)

# key -> (category, recurrence, field holding the display name, legacy date field)
LEGACY_ARRAYS = {
    "income": ("income", None, "source", None),
    "oneTimeIncomes": ("income", "once", "source", None),
    "expenses": ("expense", None, "category", None),
    "payments": ("payment", "monthly", "name", "startDate"),
    "oneTimePayments": ("payment", "once", "name", "dueDate"),
}


class ImportRejectedError(ValueError):
    """The document does not have the shape of an export; nothing was imported."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Import rejected: {reason}")


@dataclass
class ImportResult:
    bundle: AppBundle
    validation: ValidationResult


def _first_error(error: ValidationError) -> str:
    err = error.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg')}" if location else str(err.get("msg"))


class ImportValidator:
    """
    Validates and repairs exported FinTrack data.

    Stage 1 (structure) raises ImportRejectedError.
    Stage 2 (coercion) never raises; it records issues instead.
    """

    def __init__(
        self,
        today: Optional[date] = None,
        default_preferences: Optional[AppPreferences] = None,
    ):
        """
        Initialize validator.

        Args:
            today: Date assumed for entries without one (defaults to today)
            default_preferences: Used when the export has no usable settings
        """
        self._today = today or date.today()
        self._default_preferences = default_preferences or AppPreferences()

    # -------------------------------------------------------------------------
    # Stage 1
    # -------------------------------------------------------------------------

    def _validate_structure(self, text: Union[str, bytes]) -> dict:
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise ImportRejectedError(f"file is not UTF-8 text ({e.reason})") from e

        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise ImportRejectedError(f"file is not valid JSON ({e})") from e

        if not isinstance(data, dict):
            raise ImportRejectedError("top level must be an object")

        profiles = data.get("profiles")
        if not isinstance(profiles, list):
            raise ImportRejectedError("'profiles' list is missing")

        if not isinstance(data.get("activeProfile"), str):
            raise ImportRejectedError("'activeProfile' is missing")

        if "profileData" in data and not isinstance(data["profileData"], dict):
            raise ImportRejectedError("'profileData' must be an object")

        return data

    # -------------------------------------------------------------------------
    # Stage 2
    # -------------------------------------------------------------------------

    def _coerce_item(
        self,
        raw: Any,
        path: str,
        issues: list[ValidationIssue],
        validate,
    ) -> Optional[Any]:
        """Give an entry an id if needed and validate it; drop it on failure."""
        if not isinstance(raw, dict):
            issues.append(ValidationIssue(
                field=path,
                issue_type="dropped",
                message="Entry is not an object and was skipped",
                severity="warning",
            ))
            return None

        item = dict(raw)
        if not item.get("id"):
            item["id"] = str(uuid4())
            issues.append(ValidationIssue(
                field=f"{path}.id",
                issue_type="missing",
                message="Missing id was generated",
                severity="warning",
            ))

        try:
            return validate(item)
        except ValidationError as e:
            issues.append(ValidationIssue(
                field=path,
                issue_type="dropped",
                message=f"Entry could not be repaired and was skipped ({_first_error(e)})",
                severity="warning",
            ))
            return None

    def _fill_date(self, item: dict, path: str, issues: list[ValidationIssue]) -> None:
        if not item.get("date"):
            item["date"] = self._today.isoformat()
            issues.append(ValidationIssue(
                field=f"{path}.date",
                issue_type="missing",
                message=f"Missing date was set to {self._today.isoformat()}",
                severity="warning",
            ))

    def _coerce_transaction(
        self,
        raw: Any,
        path: str,
        issues: list[ValidationIssue],
    ) -> Optional[Transaction]:
        if isinstance(raw, dict):
            raw = dict(raw)
            self._fill_date(raw, path, issues)
            details = raw.get("installmentDetails")
            if isinstance(details, dict) and not details.get("completionDate"):
                issues.append(ValidationIssue(
                    field=f"{path}.installmentDetails.completionDate",
                    issue_type="derived",
                    message="Completion date was derived from start date and payment count",
                    severity="info",
                ))
        return self._coerce_item(raw, path, issues, _TRANSACTION_ADAPTER.validate_python)

    def _convert_legacy(
        self,
        key: str,
        raw: Any,
    ) -> Any:
        """Map one entry of the older split layout onto a unified transaction."""
        if not isinstance(raw, dict):
            return raw
        category, recurrence, name_field, date_field = LEGACY_ARRAYS[key]

        item = {
            "id": raw.get("id"),
            "category": category,
            "recurrence": recurrence or raw.get("recurrence") or "monthly",
            "name": raw.get(name_field) or raw.get("name"),
            "amount": raw.get("amount"),
            "date": raw.get("date") or (raw.get(date_field) if date_field else None),
        }
        if category == "payment" and item["recurrence"] == "monthly":
            item["installmentDetails"] = raw.get("installmentDetails") or {
                "numberOfPayments": raw.get("numberOfPayments"),
                "completionDate": raw.get("completionDate"),
            }
        if "status" in raw:
            item["status"] = raw["status"]
        return item

    def _coerce_balance(self, raw: Any, path: str, issues: list[ValidationIssue]) -> Decimal:
        if raw is None:
            issues.append(ValidationIssue(
                field=path,
                issue_type="missing",
                message="Missing current balance was set to 0",
                severity="info",
            ))
            return Decimal("0")
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            value = None
        if value is not None and value.is_finite():
            return value

        issues.append(ValidationIssue(
            field=path,
            issue_type="invalid_format",
            message=f"Current balance '{raw}' is not a number and was set to 0",
            severity="warning",
        ))
        return Decimal("0")

    def _list(self, data: dict, key: str, path: str, issues: list[ValidationIssue]) -> list:
        value = data.get(key)
        if isinstance(value, list):
            return value
        issues.append(ValidationIssue(
            field=f"{path}.{key}",
            issue_type="missing",
            message=f"'{key}' was missing and is now empty",
            severity="info",
        ))
        return []

    def coerce_profile(
        self,
        raw: Any,
        path: str,
        issues: list[ValidationIssue],
    ) -> tuple[ProfileData, bool]:
        """
        Repair one profile document.

        Returns:
            (profile, legacy_format)
        """
        if not isinstance(raw, dict):
            issues.append(ValidationIssue(
                field=path,
                issue_type="invalid_format",
                message="Profile data is not an object; an empty profile was created",
                severity="warning",
            ))
            return ProfileData(), False

        transactions: list[Transaction] = []
        legacy = False

        if "transactions" in raw or not any(k in raw for k in LEGACY_ARRAYS):
            for index, item in enumerate(self._list(raw, "transactions", path, issues)):
                txn = self._coerce_transaction(item, f"{path}.transactions[{index}]", issues)
                if txn is not None:
                    transactions.append(txn)

        for key in LEGACY_ARRAYS:
            if not isinstance(raw.get(key), list):
                continue
            legacy = True
            for index, item in enumerate(raw[key]):
                txn = self._coerce_transaction(
                    self._convert_legacy(key, item), f"{path}.{key}[{index}]", issues
                )
                if txn is not None:
                    transactions.append(txn)

        accounts = []
        for index, item in enumerate(self._list(raw, "savingsAccounts", path, issues)):
            account = self._coerce_item(
                item, f"{path}.savingsAccounts[{index}]", issues, SavingsAccount.model_validate
            )
            if account is not None:
                accounts.append(account)

        goals = []
        account_ids = {a.id for a in accounts}
        for index, item in enumerate(self._list(raw, "savingsGoals", path, issues)):
            goal = self._coerce_item(
                item, f"{path}.savingsGoals[{index}]", issues, SavingsGoal.model_validate
            )
            if goal is None:
                continue
            if goal.linked_account_id is not None and goal.linked_account_id not in account_ids:
                issues.append(ValidationIssue(
                    field=f"{path}.savingsGoals[{index}].linkedAccountId",
                    issue_type="dangling_reference",
                    message=f"Goal '{goal.name}' pointed at a missing account and was unlinked",
                    severity="warning",
                ))
                goal.linked_account_id = None
            goals.append(goal)

        profile = ProfileData(
            transactions=transactions,
            current_balance=self._coerce_balance(
                raw.get("currentBalance"), f"{path}.currentBalance", issues
            ),
            savings_goals=goals,
            savings_accounts=accounts,
        )
        return profile, legacy

    def _coerce_settings(self, raw: Any, issues: list[ValidationIssue]) -> AppPreferences:
        if raw is None:
            return self._default_preferences.model_copy()
        if not isinstance(raw, dict):
            issues.append(ValidationIssue(
                field="settings",
                issue_type="invalid_format",
                message="Settings were unreadable; defaults were kept",
                severity="warning",
            ))
            return self._default_preferences.model_copy()

        values = self._default_preferences.to_json_dict()
        for key in ("language", "currency", "geminiApiKey"):
            if key not in raw:
                continue
            candidate = {**values, key: raw[key]}
            try:
                AppPreferences.model_validate(candidate)
                values = candidate
            except ValidationError:
                issues.append(ValidationIssue(
                    field=f"settings.{key}",
                    issue_type="invalid_value",
                    message=f"Unsupported {key} '{raw[key]}'; the default was kept",
                    severity="warning",
                ))
        return AppPreferences.model_validate(values)

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def validate(self, text: Union[str, bytes]) -> ImportResult:
        """
        Run the full two-stage pipeline on an export file's text.

        Raises:
            ImportRejectedError: If stage 1 fails
        """
        data = self._validate_structure(text)
        issues: list[ValidationIssue] = []

        profiles: list[str] = []
        for index, name in enumerate(data["profiles"]):
            cleaned = name.strip() if isinstance(name, str) else ""
            if not cleaned or cleaned in profiles:
                issues.append(ValidationIssue(
                    field=f"profiles[{index}]",
                    issue_type="dropped",
                    message=f"Profile name {name!r} is empty or repeated and was skipped",
                    severity="warning",
                ))
                continue
            profiles.append(cleaned)

        active = data["activeProfile"].strip()
        if not active:
            if not profiles:
                raise ImportRejectedError("no usable profile names")
            active = profiles[0]
            issues.append(ValidationIssue(
                field="activeProfile",
                issue_type="missing",
                message=f"Active profile was empty; '{active}' is now active",
                severity="warning",
            ))
        elif active not in profiles:
            profiles.append(active)
            issues.append(ValidationIssue(
                field="activeProfile",
                issue_type="missing",
                message=f"Active profile '{active}' was not listed and has been added",
                severity="warning",
            ))

        raw_data = data.get("profileData") or {}
        profile_data: dict[str, ProfileData] = {}
        legacy_format = False
        for name in profiles:
            if name not in raw_data:
                issues.append(ValidationIssue(
                    field=f"profileData.{name}",
                    issue_type="missing",
                    message=f"Profile '{name}' had no data; it starts empty",
                    severity="warning",
                ))
                profile_data[name] = ProfileData()
                continue
            profile, legacy = self.coerce_profile(raw_data[name], f"profileData.{name}", issues)
            profile_data[name] = profile
            legacy_format = legacy_format or legacy

        for name in raw_data:
            if name not in profile_data:
                issues.append(ValidationIssue(
                    field=f"profileData.{name}",
                    issue_type="dropped",
                    message=f"Data for unlisted profile '{name}' was ignored",
                    severity="warning",
                ))

        bundle = AppBundle(
            active_profile=active,
            profiles=profiles,
            profile_data=profile_data,
            settings=self._coerce_settings(data.get("settings"), issues),
        )
        result = ValidationResult(
            structure_valid=True,
            legacy_format=legacy_format,
            issues=issues,
        )
        return ImportResult(bundle=bundle, validation=result)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Short text for the import confirmation message."""
        if not result.repaired:
            return "✅ Import complete. Everything was read as-is."

        lines = ["✅ Import complete, with some repairs:"]
        if result.legacy_format:
            lines.append("   • Data from an older version was converted")
        for issue in result.issues:
            if issue.severity == "warning":
                lines.append(f"   • {issue.field}: {issue.message}")
        return "\n".join(lines)
