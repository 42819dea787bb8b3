"""
File-backed access to roster CSV exports and portal configuration.

Layout of the data folder:

    <data_path>/<CountryName>/<FileType>_<Month>.csv
    <data_path>/config/users.json
    <data_path>/config/countries.json
    <data_path>/config/visible_months.json
"""
import hashlib
import hmac
import json
import logging
import os
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

from .csv_reader import Row, tokenize
from .date_utils import MONTH_NAMES, normalize_month_name
from .models import DailyStatsData, MistakeStatsData, ShiftData, WHData
from .parsers import parse_daily_stats, parse_mistake_stats, parse_shift_data, parse_wh_data

logger = logging.getLogger(__name__)

FILE_TYPES = ('Daily_Stats', 'Dealer_Shift', 'Dealer_Stats', 'Dealer_WH', 'SM_Shift', 'SM_WH')

# A month is offered once these three exports exist
REQUIRED_FILE_TYPES = ('Daily_Stats', 'Dealer_Shift', 'Dealer_Stats')

ROLES = ('global_admin', 'admin', 'operation', 'dealer', 'sm')

ROLE_FILE_TYPES: Dict[str, Tuple[str, ...]] = {
    'dealer': ('Daily_Stats', 'Dealer_Shift', 'Dealer_Stats', 'Dealer_WH'),
    'sm': ('Daily_Stats', 'Dealer_Stats', 'SM_Shift', 'SM_WH'),
    'operation': FILE_TYPES,
    'admin': FILE_TYPES,
    'global_admin': FILE_TYPES,
}

STAFF_FILE_TYPES = {
    'dealer': ('Dealer_Shift', 'Dealer_WH'),
    'sm': ('SM_Shift', 'SM_WH'),
}

SECTIONS = ('schedule', 'mistake_statistics', 'daily_mistakes')
MAX_VISIBLE_MONTHS = 3
DEFAULT_DISPLAY_COUNT = 3


class CSVFileNotFound(FileNotFoundError):
    """Requested roster export does not exist."""


def csv_file_name(file_type: str, month: str) -> str:
    """'{FileType}_{MonthName}.csv' for a known file type and English month name."""
    if file_type not in FILE_TYPES:
        raise ValueError(f"Unknown file type: {file_type!r}")
    return f"{file_type}_{normalize_month_name(month)}.csv"


def hash_password(password: str) -> str:
    """SHA-256 hex digest (matches users.json password_hash)."""
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


class CSVCache:
    """Tokenized CSV files keyed by path.

    An entry is served while the file's mtime is unchanged; with ttl > 0 the
    mtime is only re-checked once the entry is older than ttl seconds.
    """

    def __init__(self, ttl: float = 0.0):
        self.ttl = ttl
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, float, List[Row]]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def get(self, path: str) -> List[Row]:
        now = time.monotonic()
        with self._lock:
            cached = self._entries.get(path)
        if cached is not None:
            mtime, loaded_at, rows = cached
            if self.ttl > 0 and now - loaded_at < self.ttl:
                return rows
            try:
                current_mtime = os.path.getmtime(path)
            except OSError:
                current_mtime = None
            if current_mtime == mtime:
                with self._lock:
                    self._entries[path] = (mtime, now, rows)
                return rows

        try:
            mtime = os.path.getmtime(path)
            with open(path, 'r', encoding='utf-8-sig') as f:
                text = f.read()
        except FileNotFoundError:
            self.invalidate(path)
            raise CSVFileNotFound(path)
        rows = tokenize(text)
        logger.debug("CSV loaded: %s (%d bytes, %d rows)", path, len(text), len(rows))
        with self._lock:
            self._entries[path] = (mtime, now, rows)
        return rows

    def invalidate(self, path: Optional[str] = None) -> int:
        """Drop one path, or every entry when path is None. Returns count removed."""
        with self._lock:
            if path is None:
                count = len(self._entries)
                self._entries.clear()
                return count
            return 1 if self._entries.pop(path, None) is not None else 0


# ── Global cross-request CSV cache ──────────────────────────────
_GLOBAL_CSV_CACHE = CSVCache(ttl=float(os.environ.get('ROSTER_CACHE_TTL', '300')))


class RosterStore:
    def __init__(self, data_path: str, cache: Optional[CSVCache] = None):
        self.data_path = data_path
        self.cache = cache if cache is not None else _GLOBAL_CSV_CACHE

    # ── CSV exports ────────────────────────────────────────────
    def _csv_path(self, country_name: str, file_type: str, month: str) -> str:
        return os.path.join(self.data_path, country_name, csv_file_name(file_type, month))

    def file_exists(self, country_name: str, file_type: str, month: str) -> bool:
        return os.path.isfile(self._csv_path(country_name, file_type, month))

    def load_rows(self, country_name: str, file_type: str, month: str) -> List[Row]:
        """Tokenized rows of one export; raises CSVFileNotFound when absent."""
        path = self._csv_path(country_name, file_type, month)
        return self.cache.get(path)

    def available_files(self, country_name: str, month: str) -> List[str]:
        return [ft for ft in FILE_TYPES if self.file_exists(country_name, ft, month)]

    def detect_available_months(self, country_name: str) -> List[str]:
        """Months (calendar order) for which every required export exists."""
        return [
            month for month in MONTH_NAMES
            if all(self.file_exists(country_name, ft, month) for ft in REQUIRED_FILE_TYPES)
        ]

    def get_daily_stats(self, country_name: str, month: str) -> DailyStatsData:
        return parse_daily_stats(self.load_rows(country_name, 'Daily_Stats', month))

    def get_mistake_stats(self, country_name: str, month: str) -> MistakeStatsData:
        return parse_mistake_stats(self.load_rows(country_name, 'Dealer_Stats', month))

    def get_shift_data(self, country_name: str, staff: str, month: str) -> ShiftData:
        shift_type, _ = self._staff_types(staff)
        return parse_shift_data(self.load_rows(country_name, shift_type, month))

    def get_wh_data(self, country_name: str, staff: str, month: str) -> WHData:
        _, wh_type = self._staff_types(staff)
        return parse_wh_data(self.load_rows(country_name, wh_type, month))

    @staticmethod
    def _staff_types(staff: str) -> Tuple[str, str]:
        try:
            return STAFF_FILE_TYPES[staff]
        except KeyError:
            raise ValueError(f"Unknown staff kind: {staff!r}")

    # ── Sidecar JSON config ────────────────────────────────────
    def _config_path(self, name: str) -> str:
        return os.path.join(self.data_path, 'config', f'{name}.json')

    def _load_json(self, name: str, default: Any) -> Any:
        path = self._config_path(name)
        if not os.path.exists(path):
            return default
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Config %s unreadable: %s", path, e)
            return default

    def _save_json(self, name: str, data: Any) -> None:
        path = self._config_path(name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp = path + '.tmp'
        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)

    # ── Users ──────────────────────────────────────────────────
    def get_users(self) -> List[Dict]:
        return self._load_json('users', {'users': []}).get('users', [])

    def verify_user_password(self, username: str, password: str) -> Optional[Dict]:
        """Verify username+password, return user dict (without hash) or None."""
        expected = hash_password(password)
        for u in self.get_users():
            if (u.get('username') or '').strip().lower() != username.strip().lower():
                continue
            stored = (u.get('password_hash') or '').encode('utf-8')
            if not hmac.compare_digest(stored, expected.encode('utf-8')):
                return None
            full_name = (u.get('fullName') or '').strip()
            first, _, last = full_name.partition(' ')
            return {
                'ID': u.get('id'),
                'NAME': u.get('username', ''),
                'full_name': full_name,
                'first_name': first,
                'surname': last,
                'role': u.get('role') if u.get('role') in ROLES else 'dealer',
                'country_id': u.get('countryId'),
            }
        return None

    # ── Countries ──────────────────────────────────────────────
    def get_countries(self) -> List[Dict]:
        countries = self._load_json('countries', {'countries': []}).get('countries', [])
        return sorted(countries, key=lambda c: c.get('name', ''))

    def get_country(self, country_id: str) -> Optional[Dict]:
        for c in self.get_countries():
            if str(c.get('id')) == str(country_id):
                return c
        return None

    # ── Visible months ─────────────────────────────────────────
    def _visible_config(self) -> Dict:
        return self._load_json('visible_months', {})

    def get_visible_months(self, country_id: str, section: str) -> List[str]:
        if section not in SECTIONS:
            raise ValueError(f"Unknown section: {section!r}")
        entry = self._visible_config().get(str(country_id), {}).get(section, {})
        return [m for m in entry.get('months', []) if m]

    def get_all_visible_months(self, country_id: str) -> Dict[str, List[str]]:
        return {section: self.get_visible_months(country_id, section) for section in SECTIONS}

    def set_visible_month(self, country_id: str, section: str, priority: int, month: str) -> List[str]:
        """Put month at slot priority (1..3); a blank month clears that slot."""
        if section not in SECTIONS:
            raise ValueError(f"Unknown section: {section!r}")
        if not 1 <= priority <= MAX_VISIBLE_MONTHS:
            raise ValueError(f"Priority must be between 1 and {MAX_VISIBLE_MONTHS}")
        config = self._visible_config()
        entry = config.setdefault(str(country_id), {}).setdefault(section, {})
        months = list(entry.get('months', []))
        index = priority - 1
        if month and month.strip():
            month = normalize_month_name(month)
            while len(months) <= index:
                months.append('')
            months[index] = month
        elif index < len(months):
            # other slots keep their priority
            months[index] = ''
            while months and not months[-1]:
                months.pop()
        entry['months'] = months
        self._save_json('visible_months', config)
        return [m for m in months if m]

    def get_display_count(self, country_id: str) -> int:
        entry = self._visible_config().get(str(country_id), {}).get('schedule', {})
        try:
            return int(entry.get('displayCount', DEFAULT_DISPLAY_COUNT))
        except (TypeError, ValueError):
            return DEFAULT_DISPLAY_COUNT

    def set_display_count(self, country_id: str, display_count: int) -> int:
        if not 1 <= display_count <= MAX_VISIBLE_MONTHS:
            raise ValueError(f"Display count must be between 1 and {MAX_VISIBLE_MONTHS}")
        config = self._visible_config()
        config.setdefault(str(country_id), {}).setdefault('schedule', {})['displayCount'] = display_count
        self._save_json('visible_months', config)
        return display_count
