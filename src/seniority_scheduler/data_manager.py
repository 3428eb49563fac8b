"""
Data Manager for Shift Scheduling System

Handles all file I/O operations, JSON persistence, and CRUD operations
for staff, constraints, schedules, task assignments and schedule history.
"""

import copy
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from pathlib import Path

MIN_SENIORITY = 1
MAX_SENIORITY = 10
DEFAULT_SENIORITY = 5

DAY_STATUSES = ("unavailable", "leave", "required")


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the data file is corrupted"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the data file is not found"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


def validate_seniority(seniority: Any) -> int:
    """Coerce seniority to int and check it lies in 1..10"""
    try:
        value = int(seniority)
    except (TypeError, ValueError):
        raise DataValidationError(f"Seniority must be an integer, got {seniority!r}")
    if not MIN_SENIORITY <= value <= MAX_SENIORITY:
        raise DataValidationError(f"Seniority must be between {MIN_SENIORITY} and {MAX_SENIORITY}, got {value}")
    return value


@dataclass
class StaffMember:
    """Staff member with seniority and per-date availability markers"""
    id: int
    name: str
    seniority: int = DEFAULT_SENIORITY
    unavailability: List[str] = field(default_factory=list)  # preference, keeps target
    leave_days: List[str] = field(default_factory=list)  # real absence, may reduce target
    required_days: List[str] = field(default_factory=list)  # locked in before greedy fill

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "seniority": self.seniority,
            "unavailability": list(self.unavailability),
            "leaveDays": list(self.leave_days),
            "requiredDays": list(self.required_days)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StaffMember':
        if data.get("id") is None:
            raise DataValidationError(f"Staff record without id: {data!r}")

        # Older records carry firstName/lastName instead of a single name
        name = data.get("name")
        if not name:
            name = f"{data.get('firstName') or ''} {data.get('lastName') or ''}".strip()
        if not name:
            raise DataValidationError(f"Staff record {data['id']} has no name")

        return cls(
            id=data["id"],
            name=name,
            seniority=validate_seniority(data.get("seniority", DEFAULT_SENIORITY)),
            unavailability=list(data.get("unavailability") or []),
            leave_days=list(data.get("leaveDays") or []),
            required_days=list(data.get("requiredDays") or [])
        )


@dataclass
class SlotSystem:
    """Seniority allowlists for the first and second daily slot"""
    enabled: bool = False
    slot1_seniorities: List[int] = field(default_factory=lambda: [6, 5, 4])
    slot2_seniorities: List[int] = field(default_factory=lambda: [3, 2, 1])

    def allowed_for_slot(self, slot_index: int) -> Optional[List[int]]:
        """Allowlist for a 0-based slot position; None means any seniority"""
        if slot_index == 0:
            return self.slot1_seniorities
        if slot_index == 1:
            return self.slot2_seniorities
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "slot1Seniorities": list(self.slot1_seniorities),
            "slot2Seniorities": list(self.slot2_seniorities)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SlotSystem':
        defaults = cls()
        return cls(
            enabled=bool(data.get("enabled", False)),
            slot1_seniorities=[int(s) for s in data.get("slot1Seniorities", defaults.slot1_seniorities)],
            slot2_seniorities=[int(s) for s in data.get("slot2Seniorities", defaults.slot2_seniorities)]
        )


@dataclass
class TaskColumnConfig:
    """Eligibility and capacity rules for one task column"""
    eligible_staff_ids: List[int] = field(default_factory=list)
    eligible_seniorities: List[int] = field(default_factory=list)
    target_weekdays: List[int] = field(default_factory=lambda: [1, 3, 4, 5])  # 0 = Sunday
    max_per_day: int = 3
    preferred_seniority_mix: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eligibleStaffIds": list(self.eligible_staff_ids),
            "eligibleSeniorities": list(self.eligible_seniorities),
            "targetWeekdays": list(self.target_weekdays),
            "maxPerDay": self.max_per_day,
            "preferredSeniorityMix": list(self.preferred_seniority_mix)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TaskColumnConfig':
        defaults = cls()
        return cls(
            eligible_staff_ids=list(data.get("eligibleStaffIds") or []),
            eligible_seniorities=[int(s) for s in data.get("eligibleSeniorities") or []],
            target_weekdays=[int(d) for d in data.get("targetWeekdays", defaults.target_weekdays)],
            max_per_day=int(data.get("maxPerDay", defaults.max_per_day)),
            preferred_seniority_mix=[int(s) for s in data.get("preferredSeniorityMix") or []]
        )


def _default_daily_needs() -> Dict[str, int]:
    return {day: 2 for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")}


@dataclass
class Constraints:
    """Scheduling constraints for one generation run"""
    daily_needs: Dict[str, int] = field(default_factory=_default_daily_needs)
    shift_duration: int = 8  # hours, informational
    max_shifts_per_month: int = 20
    min_rest_hours: int = 11
    selected_month: str = field(default_factory=lambda: datetime.now().strftime("%Y-%m"))
    slot_system: SlotSystem = field(default_factory=SlotSystem)
    beneficial_days: List[str] = field(default_factory=list)
    beneficial_days_threshold: int = 4
    task_columns: List[str] = field(default_factory=list)
    task_column_configs: Dict[int, TaskColumnConfig] = field(default_factory=dict)

    def need_for(self, day_name: str) -> int:
        # A missing weekday falls back to 2, an explicit 0 is kept
        return int(self.daily_needs.get(day_name, 2))

    def column_config(self, column_index: int) -> TaskColumnConfig:
        return self.task_column_configs.get(column_index) or TaskColumnConfig()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dailyNeeds": dict(self.daily_needs),
            "shiftDuration": self.shift_duration,
            "maxShiftsPerMonth": self.max_shifts_per_month,
            "minRestHours": self.min_rest_hours,
            "selectedMonth": self.selected_month,
            "slotSystem": self.slot_system.to_dict(),
            "beneficialDays": list(self.beneficial_days),
            "beneficialDaysThreshold": self.beneficial_days_threshold,
            "taskColumns": list(self.task_columns),
            "taskColumnConfig": {str(idx): cfg.to_dict() for idx, cfg in self.task_column_configs.items()}
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Constraints':
        """Build constraints from a saved dict, merging over the defaults"""
        defaults = cls()
        daily_needs = dict(defaults.daily_needs)
        daily_needs.update({day: int(need) for day, need in (data.get("dailyNeeds") or {}).items()})
        for day, need in daily_needs.items():
            if need < 0:
                raise DataValidationError(f"Daily need for {day} must be >= 0, got {need}")

        configs = {}
        for idx, cfg in (data.get("taskColumnConfig") or {}).items():
            configs[int(idx)] = TaskColumnConfig.from_dict(cfg)

        return cls(
            daily_needs=daily_needs,
            shift_duration=int(data.get("shiftDuration", defaults.shift_duration)),
            max_shifts_per_month=int(data.get("maxShiftsPerMonth", defaults.max_shifts_per_month)),
            min_rest_hours=int(data.get("minRestHours", defaults.min_rest_hours)),
            selected_month=data.get("selectedMonth") or defaults.selected_month,
            slot_system=SlotSystem.from_dict(data.get("slotSystem") or {}),
            beneficial_days=list(data.get("beneficialDays") or []),
            beneficial_days_threshold=int(data.get("beneficialDaysThreshold", defaults.beneficial_days_threshold)),
            task_columns=list(data.get("taskColumns") or []),
            task_column_configs=configs
        )


def normalize_tasks(tasks: Dict[str, Any]) -> Dict[str, Dict[int, List[int]]]:
    """Task maps read from JSON have string column keys; use ints"""
    normalized = {}
    for date_str, day_tasks in (tasks or {}).items():
        normalized[date_str] = {}
        for idx, assigned in (day_tasks or {}).items():
            if assigned is None:
                continue
            ids = assigned if isinstance(assigned, list) else [assigned]
            normalized[date_str][int(idx)] = list(ids)
    return normalized


class DataManager:
    """Manages all data persistence and CRUD operations"""

    def __init__(self, data_file: str = "data/schedule_data.json"):
        self.data_file = Path(data_file)
        self.data = self._load_or_create_data()

    def _load_or_create_data(self) -> Dict[str, Any]:
        """Load existing data or create default structure with recovery from backup"""
        backup_file = self.data_file.with_suffix('.bak')
        if self.data_file.exists():
            try:
                with open(self.data_file, 'r', encoding='utf-8') as f:
                    return self._validate_and_migrate_data(json.load(f))
            except (json.JSONDecodeError, IOError) as e:
                logging.error(f"Error loading main data file {self.data_file}: {e}")
                if not backup_file.exists():
                    raise DataFileCorruptedError(f"Main data file corrupted and no backup available: {e}")
                return self._recover_from_backup(backup_file)
        if backup_file.exists():
            logging.info(f"Main data file missing, attempting recovery from backup {backup_file}")
            return self._recover_from_backup(backup_file)
        logging.info("No data file found, creating default data")
        return self._create_default_data()

    def _recover_from_backup(self, backup_file: Path) -> Dict[str, Any]:
        try:
            with open(backup_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            backup_file.replace(self.data_file)
            logging.info("Successfully recovered data from backup")
            return self._validate_and_migrate_data(data)
        except (json.JSONDecodeError, IOError) as backup_e:
            logging.error(f"Backup file corrupted: {backup_e}")
            logging.info("Creating default data due to corrupted backup")
            return self._create_default_data()

    def _validate_and_migrate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and migrate data structure to current version"""
        if not isinstance(data, dict):
            raise DataValidationError("Data file root must be an object")

        default_data = self._create_default_data()
        for key in default_data:
            if key not in data:
                data[key] = default_data[key]

        # Collapse legacy firstName/lastName into name, fill missing date sets
        data["staffList"] = [StaffMember.from_dict(raw).to_dict() for raw in data.get("staffList", [])]

        # Merge saved constraints over defaults so new fields are present;
        # files without a selected month fall back to the last used one
        raw_constraints = dict(data.get("constraints") or {})
        if not raw_constraints.get("selectedMonth"):
            raw_constraints["selectedMonth"] = data["settings"].get("lastUsedMonth")
        data["constraints"] = Constraints.from_dict(raw_constraints).to_dict()

        data["tasks"] = {
            date_str: {str(idx): ids for idx, ids in day_tasks.items()}
            for date_str, day_tasks in normalize_tasks(data.get("tasks")).items()
        }
        return data

    def _create_default_data(self) -> Dict[str, Any]:
        """Create default data structure"""
        return {
            "settings": {
                "appVersion": "1.0.0",
                "lastUsedMonth": datetime.now().strftime("%Y-%m"),
                "dataFile": str(self.data_file)
            },
            "staffList": [],
            "constraints": Constraints().to_dict(),
            "currentSchedule": None,
            "scheduleHistory": [],
            "tasks": {}  # {date: {column_index: [staff_ids]}}
        }

    def _validate_saved_data(self) -> bool:
        """Validate that the saved data file matches current data"""
        try:
            if not self.data_file.exists():
                raise DataFileNotFoundError(f"Saved data file {self.data_file} does not exist")

            with open(self.data_file, 'r', encoding='utf-8') as f:
                saved_data = json.load(f)

            required_keys = ["settings", "staffList", "constraints", "scheduleHistory", "tasks"]
            for key in required_keys:
                if key not in saved_data:
                    raise DataValidationError(f"Required section '{key}' missing from saved data")

            if saved_data.get("settings", {}).get("appVersion") != self.data.get("settings", {}).get("appVersion"):
                raise DataValidationError("App version mismatch in saved data")

            return True

        except (json.JSONDecodeError, IOError) as e:
            raise DataValidationError(f"Failed to validate saved data: {e}")

    def save_data(self) -> bool:
        """Save current data to file atomically with validation"""
        temp_file = None
        backup_file = self.data_file.with_suffix('.bak')

        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            if self.data_file.exists():
                self.data_file.replace(backup_file)

            # Write to temporary file first (atomic operation)
            temp_file = self.data_file.with_suffix('.tmp')
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.data_file)

            self._validate_saved_data()
            return True

        except DataValidationError as e:
            logging.error(f"Data validation failed after save: {e}", exc_info=True)
            if backup_file.exists():
                try:
                    backup_file.replace(self.data_file)
                except OSError as restore_e:
                    logging.error(f"Failed to restore from backup: {restore_e}", exc_info=True)
            raise DataSaveError(f"Save operation failed validation: {e}")

        except (IOError, OSError) as e:
            logging.error(f"I/O error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Failed to save data due to I/O error: {e}")

        except (TypeError, ValueError) as e:
            logging.error(f"Unexpected error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Unexpected error during save: {e}")

        finally:
            if temp_file and temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_e:
                    logging.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}", exc_info=True)

    # Staff Management
    def get_staff_list(self) -> List[StaffMember]:
        return [StaffMember.from_dict(raw) for raw in self.data.get("staffList", [])]

    def get_staff_by_id(self, staff_id: int) -> Optional[StaffMember]:
        for raw in self.data.get("staffList", []):
            if raw["id"] == staff_id:
                return StaffMember.from_dict(raw)
        return None

    def get_staff_by_name(self, name: str) -> Optional[StaffMember]:
        for raw in self.data.get("staffList", []):
            if raw["name"] == name:
                return StaffMember.from_dict(raw)
        return None

    def add_staff(self, name: str, seniority: int = DEFAULT_SENIORITY) -> StaffMember:
        """Add new staff member with the next free id"""
        if not name or not name.strip():
            raise DataValidationError("Staff name must not be empty")

        existing_ids = [raw["id"] for raw in self.data.get("staffList", [])]
        staff = StaffMember(
            id=max(existing_ids, default=0) + 1,
            name=name.strip(),
            seniority=validate_seniority(seniority)
        )
        self.data.setdefault("staffList", []).append(staff.to_dict())
        return staff

    def update_staff(self, staff_id: int, name: str = None, seniority: int = None) -> bool:
        for raw in self.data.get("staffList", []):
            if raw["id"] == staff_id:
                if name is not None:
                    if not name.strip():
                        raise DataValidationError("Staff name must not be empty")
                    raw["name"] = name.strip()
                if seniority is not None:
                    raw["seniority"] = validate_seniority(seniority)
                return True
        return False

    def delete_staff(self, staff_id: int) -> bool:
        """Delete staff member and scrub them from task column eligibility"""
        staff_list = self.data.get("staffList", [])
        remaining = [raw for raw in staff_list if raw["id"] != staff_id]
        if len(remaining) == len(staff_list):
            return False
        self.data["staffList"] = remaining

        for cfg in self.data.get("constraints", {}).get("taskColumnConfig", {}).values():
            if staff_id in cfg.get("eligibleStaffIds", []):
                cfg["eligibleStaffIds"].remove(staff_id)
        return True

    # Availability Management
    def set_day_status(self, staff_id: int, date_str: str, status: Optional[str]) -> bool:
        """
        Mark a date for a staff member as unavailable, leave or required.

        A date holds at most one status, so setting one clears the other two;
        status None clears the date entirely.
        """
        if status is not None and status not in DAY_STATUSES:
            raise DataValidationError(f"Unknown day status: {status}")

        keys = {"unavailable": "unavailability", "leave": "leaveDays", "required": "requiredDays"}
        for raw in self.data.get("staffList", []):
            if raw["id"] == staff_id:
                for day_status, key in keys.items():
                    dates = [d for d in raw.get(key, []) if d != date_str]
                    if day_status == status:
                        dates.append(date_str)
                    raw[key] = dates
                return True
        return False

    def get_day_status(self, staff_id: int, date_str: str) -> Optional[str]:
        staff = self.get_staff_by_id(staff_id)
        if not staff:
            return None
        if date_str in staff.unavailability:
            return "unavailable"
        if date_str in staff.leave_days:
            return "leave"
        if date_str in staff.required_days:
            return "required"
        return None

    # Constraints Management
    def get_constraints(self) -> Constraints:
        return Constraints.from_dict(self.data.get("constraints") or {})

    def set_constraints(self, constraints: Constraints):
        self.data["constraints"] = constraints.to_dict()
        self.set_setting("lastUsedMonth", constraints.selected_month)

    # Schedule Management
    def get_schedule_data(self) -> Optional[Dict[str, Any]]:
        """Current schedule in its plain persisted form"""
        return self.data.get("currentSchedule")

    def save_schedule_data(self, schedule_data: Optional[Dict[str, Any]]):
        self.data["currentSchedule"] = schedule_data

    def get_tasks(self) -> Dict[str, Dict[int, List[int]]]:
        return normalize_tasks(self.data.get("tasks"))

    def save_tasks(self, tasks: Dict[str, Dict[int, List[int]]]):
        self.data["tasks"] = {
            date_str: {str(idx): list(ids) for idx, ids in day_tasks.items()}
            for date_str, day_tasks in tasks.items()
        }

    # Schedule History
    def save_schedule_to_history(self, name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Snapshot the current schedule with its constraints, staff and tasks"""
        if not self.data.get("currentSchedule"):
            return None

        now = datetime.now()
        month = self.data.get("constraints", {}).get("selectedMonth", "")
        entry = {
            "id": int(now.timestamp() * 1000),
            "name": name or f"{month} ({now.strftime('%Y-%m-%d %H:%M')})",
            "createdAt": now.isoformat(),
            "schedule": copy.deepcopy(self.data["currentSchedule"]),
            "constraints": copy.deepcopy(self.data.get("constraints")),
            "staffList": copy.deepcopy(self.data.get("staffList", [])),
            "tasks": copy.deepcopy(self.data.get("tasks", {}))
        }
        existing_ids = {item["id"] for item in self.data.get("scheduleHistory", [])}
        while entry["id"] in existing_ids:
            entry["id"] += 1

        self.data.setdefault("scheduleHistory", []).insert(0, entry)
        return entry

    def get_schedule_history(self) -> List[Dict[str, Any]]:
        return list(self.data.get("scheduleHistory", []))

    def load_schedule_from_history(self, entry_id: int) -> bool:
        """Replace current working state with a history snapshot"""
        for entry in self.data.get("scheduleHistory", []):
            if entry["id"] == entry_id:
                self.data["currentSchedule"] = copy.deepcopy(entry["schedule"])
                self.data["constraints"] = copy.deepcopy(entry["constraints"])
                self.data["staffList"] = copy.deepcopy(entry["staffList"])
                self.data["tasks"] = copy.deepcopy(entry.get("tasks") or {})
                return True
        return False

    def delete_schedule_from_history(self, entry_id: int) -> bool:
        history = self.data.get("scheduleHistory", [])
        remaining = [entry for entry in history if entry["id"] != entry_id]
        self.data["scheduleHistory"] = remaining
        return len(remaining) != len(history)

    # Settings Management
    def set_setting(self, key: str, value):
        """Set application setting"""
        self.data.setdefault("settings", {})[key] = value
