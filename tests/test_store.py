# tests/test_store.py

import pytest

from sprint_core.level_params import DEFAULT_LEVEL_PARAMS_INT, InvalidLevelParams
from sprint_core.schema import AnsweredQuestion, RationalNumber, StudentProgress, TestAttempt
from sprint_core.features import extract_features
from sprint_services.store import (
    ConcurrentUpdateError,
    InMemoryStore,
    ProfileNotFound,
    SqliteStore,
)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return SqliteStore(str(tmp_path / "sprint.db"))


def _progress_with_history():
    ops = (RationalNumber(1, 2), RationalNumber(1, 3))
    aq = AnsweredQuestion("\\frac{1}{2} + \\frac{1}{3}", "5/6", True, 4, "add", ops,
                          extract_features("add", ops))
    attempt = TestAttempt("2026-10-19", 12, 21, 15, 296, (aq,))
    return StudentProgress(current_level=12, history=(attempt,), consecutive_fast_track_count=1)


def test_default_profile_created(store):
    progress, version = store.get_profile_versioned("student-9")
    assert progress == StudentProgress()
    assert version == 0
    assert store.find_profile("student-9") == progress


def test_find_unknown_profile(store):
    with pytest.raises(ProfileNotFound):
        store.find_profile("nobody")


def test_save_roundtrip(store):
    store.get_profile("s1")
    progress = _progress_with_history()
    version = store.save_profile("s1", progress, expected_version=0)
    assert version == 1
    loaded = store.get_profile("s1")
    assert loaded == progress, "Hồ sơ phải giữ nguyên sau khi lưu và đọc lại"


def test_stale_version_rejected(store):
    _, v = store.get_profile_versioned("s2")
    store.save_profile("s2", StudentProgress(current_level=2), expected_version=v)
    with pytest.raises(ConcurrentUpdateError):
        store.save_profile("s2", StudentProgress(current_level=3), expected_version=v)
    assert store.get_profile("s2").current_level == 2


def test_level_params_default_and_update(store):
    int_table, frac_table = store.get_level_params()
    assert int_table == DEFAULT_LEVEL_PARAMS_INT

    int_table[0][4] = 12
    store.update_level_params(int_table=int_table)
    assert store.get_level_params()[0][0][4] == 12

    store.reset_level_params()
    assert store.get_level_params()[0] == DEFAULT_LEVEL_PARAMS_INT


def test_invalid_level_params_not_written(store):
    int_table, _ = store.get_level_params()
    int_table[3][0] = 2.0
    with pytest.raises(InvalidLevelParams):
        store.update_level_params(int_table=int_table)
    assert store.get_level_params()[0] == DEFAULT_LEVEL_PARAMS_INT

    int_table, _ = store.get_level_params()
    int_table[2][5] = -10
    with pytest.raises(InvalidLevelParams):
        store.update_level_params(int_table=int_table)
    assert store.get_level_params()[0] == DEFAULT_LEVEL_PARAMS_INT, "Level < 6 không được có minSub âm"


class RacingSqliteStore(SqliteStore):
    """Một kết nối khác tạo hồ sơ ngay trước khi store này kịp INSERT."""

    def _insert_profile(self, conn, student_id, doc):
        SqliteStore(self.db_path).save_profile(student_id, StudentProgress(current_level=7))
        super()._insert_profile(conn, student_id, doc)


def test_sqlite_concurrent_insert_is_conflict(tmp_path):
    store = RacingSqliteStore(str(tmp_path / "sprint.db"))
    with pytest.raises(ConcurrentUpdateError):
        store.save_profile("new-student", StudentProgress(current_level=2))
    assert store.find_profile("new-student").current_level == 7, "Bản ghi của tiến trình kia phải được giữ"
