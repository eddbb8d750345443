# sprint_services/store.py

"""
Kho lưu hồ sơ học sinh và bảng tham số level (repository).
Core không gọi kho; kho được tiêm vào ProgressService.

- InMemoryStore: dict trong bộ nhớ + Lock
- SqliteStore: sqlite3, tài liệu JSON, cột version cho optimistic concurrency
"""

import os
import json
import copy
import logging
import sqlite3
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, List, Optional, Sequence, Tuple

from sprint_core.level_params import default_tables, validate_level_params
from sprint_core.schema import StudentProgress

logger = logging.getLogger(__name__)

Table = List[List[float]]


class ProfileNotFound(KeyError):
    """Không có hồ sơ cho student_id (chỉ với tra cứu nghiêm ngặt)."""


class ConcurrentUpdateError(RuntimeError):
    """Ghi hồ sơ thất bại vì version đã bị người khác thay đổi."""

    def __init__(self, student_id: str, expected: Optional[int], actual: Optional[int]):
        super().__init__(f"Hồ sơ {student_id} đã đổi version: mong đợi {expected}, hiện tại {actual}")
        self.student_id = student_id
        self.expected = expected
        self.actual = actual


class ProfileStore(ABC):
    @abstractmethod
    def get_profile_versioned(self, student_id: str) -> Tuple[StudentProgress, int]:
        """Trả (hồ sơ, version); tạo hồ sơ mặc định nếu chưa có."""

    @abstractmethod
    def find_profile(self, student_id: str) -> StudentProgress:
        """Như get_profile nhưng ném ProfileNotFound thay vì tạo mới."""

    @abstractmethod
    def save_profile(self, student_id: str, progress: StudentProgress,
                     expected_version: Optional[int] = None) -> int:
        """Ghi hồ sơ, trả version mới. Ném ConcurrentUpdateError nếu version lệch."""

    @abstractmethod
    def get_level_params(self) -> Tuple[Table, Table]:
        ...

    @abstractmethod
    def _write_level_params(self, int_table: Table, frac_table: Table) -> None:
        ...

    def get_profile(self, student_id: str) -> StudentProgress:
        return self.get_profile_versioned(student_id)[0]

    def update_level_params(self, int_table: Optional[Sequence[Sequence[float]]] = None,
                            frac_table: Optional[Sequence[Sequence[float]]] = None) -> None:
        """Kiểm tra cấu hình lúc ghi; sinh đề không bao giờ kiểm tra lại."""
        cur_int, cur_frac = self.get_level_params()
        new_int = [list(r) for r in int_table] if int_table is not None else cur_int
        new_frac = [list(r) for r in frac_table] if frac_table is not None else cur_frac
        validate_level_params(new_int, new_frac)
        self._write_level_params(new_int, new_frac)
        logger.info("🛠️ Đã cập nhật bảng tham số level")

    def reset_level_params(self) -> None:
        self._write_level_params(*default_tables())


# ==============================
# Bộ nhớ trong
# ==============================
class InMemoryStore(ProfileStore):
    def __init__(self, profiles: Optional[Dict[str, StudentProgress]] = None):
        self._lock = Lock()
        self._profiles: Dict[str, Tuple[StudentProgress, int]] = {
            sid: (p, 0) for sid, p in (profiles or {}).items()
        }
        self._int_table, self._frac_table = default_tables()

    def get_profile_versioned(self, student_id: str) -> Tuple[StudentProgress, int]:
        with self._lock:
            if student_id not in self._profiles:
                self._profiles[student_id] = (StudentProgress(), 0)
            return self._profiles[student_id]

    def find_profile(self, student_id: str) -> StudentProgress:
        with self._lock:
            if student_id not in self._profiles:
                raise ProfileNotFound(student_id)
            return self._profiles[student_id][0]

    def save_profile(self, student_id: str, progress: StudentProgress,
                     expected_version: Optional[int] = None) -> int:
        with self._lock:
            current = self._profiles.get(student_id)
            actual = current[1] if current else None
            if expected_version is not None and actual != expected_version:
                raise ConcurrentUpdateError(student_id, expected_version, actual)
            version = (actual or 0) + 1
            self._profiles[student_id] = (progress, version)
            return version

    def get_level_params(self) -> Tuple[Table, Table]:
        with self._lock:
            return copy.deepcopy(self._int_table), copy.deepcopy(self._frac_table)

    def _write_level_params(self, int_table: Table, frac_table: Table) -> None:
        with self._lock:
            self._int_table = copy.deepcopy(int_table)
            self._frac_table = copy.deepcopy(frac_table)


# ==============================
# SQLite
# ==============================
CONFIG_DOC_ID = "level_params"


class SqliteStore(ProfileStore):
    def __init__(self, db_path: str):
        self.db_path = db_path
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    student_id TEXT PRIMARY KEY,
                    version INTEGER NOT NULL,
                    doc TEXT NOT NULL
                );
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS config (
                    key TEXT PRIMARY KEY,
                    doc TEXT NOT NULL
                );
            """)
            conn.commit()
        finally:
            conn.close()

    def get_profile_versioned(self, student_id: str) -> Tuple[StudentProgress, int]:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR IGNORE INTO profiles (student_id, version, doc) VALUES (?, 0, ?)",
                (student_id, json.dumps(StudentProgress().to_dict())),
            )
            conn.commit()
            row = conn.execute(
                "SELECT doc, version FROM profiles WHERE student_id=?", (student_id,)
            ).fetchone()
        finally:
            conn.close()
        return StudentProgress.from_dict(json.loads(row[0])), row[1]

    def find_profile(self, student_id: str) -> StudentProgress:
        conn = self._connect()
        try:
            row = conn.execute("SELECT doc FROM profiles WHERE student_id=?", (student_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ProfileNotFound(student_id)
        return StudentProgress.from_dict(json.loads(row[0]))

    def save_profile(self, student_id: str, progress: StudentProgress,
                     expected_version: Optional[int] = None) -> int:
        doc = json.dumps(progress.to_dict())
        conn = self._connect()
        try:
            row = conn.execute("SELECT version FROM profiles WHERE student_id=?", (student_id,)).fetchone()
            actual = row[0] if row else None
            if expected_version is not None and actual != expected_version:
                raise ConcurrentUpdateError(student_id, expected_version, actual)

            if row is None:
                try:
                    self._insert_profile(conn, student_id, doc)
                except sqlite3.IntegrityError as e:
                    # Tiến trình khác vừa tạo hồ sơ giữa lúc SELECT và INSERT
                    raise ConcurrentUpdateError(student_id, expected_version, None) from e
                conn.commit()
                return 1

            cur = conn.execute(
                "UPDATE profiles SET doc=?, version=version+1 WHERE student_id=? AND version=?",
                (doc, student_id, actual),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise ConcurrentUpdateError(student_id, actual, None)
            return actual + 1
        finally:
            conn.close()

    def _insert_profile(self, conn: sqlite3.Connection, student_id: str, doc: str) -> None:
        conn.execute(
            "INSERT INTO profiles (student_id, version, doc) VALUES (?, 1, ?)",
            (student_id, doc),
        )

    def get_level_params(self) -> Tuple[Table, Table]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT doc FROM config WHERE key=?", (CONFIG_DOC_ID,)).fetchone()
        finally:
            conn.close()
        if not row:
            # Chưa có cấu hình: ghi bảng mặc định
            int_table, frac_table = default_tables()
            self._write_level_params(int_table, frac_table)
            return int_table, frac_table
        data = json.loads(row[0])
        defaults = default_tables()
        return data.get("int") or defaults[0], data.get("frac") or defaults[1]

    def _write_level_params(self, int_table: Table, frac_table: Table) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO config (key, doc) VALUES (?, ?)",
                (CONFIG_DOC_ID, json.dumps({"int": int_table, "frac": frac_table})),
            )
            conn.commit()
        finally:
            conn.close()
