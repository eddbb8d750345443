# tests/test_level_params.py

import pytest

from sprint_core.level_params import (
    DEFAULT_LEVEL_PARAMS_INT,
    DEFAULT_LEVEL_PARAMS_FRAC,
    InvalidLevelParams,
    LevelOutOfRange,
    default_tables,
    frac_params_for,
    int_params_for,
    validate_level_params,
)


def test_defaults_are_valid():
    validate_level_params(DEFAULT_LEVEL_PARAMS_INT, DEFAULT_LEVEL_PARAMS_FRAC)


def test_lookup_offsets():
    p1 = int_params_for(1, DEFAULT_LEVEL_PARAMS_INT)
    assert p1.min_add == DEFAULT_LEVEL_PARAMS_INT[0][3]

    assert frac_params_for(10, DEFAULT_LEVEL_PARAMS_FRAC) is None
    f11 = frac_params_for(11, DEFAULT_LEVEL_PARAMS_FRAC)
    assert f11.p_integer == DEFAULT_LEVEL_PARAMS_FRAC[0][0]
    f20 = frac_params_for(20, DEFAULT_LEVEL_PARAMS_FRAC)
    assert f20.max_magnitude == DEFAULT_LEVEL_PARAMS_FRAC[9][4]


def test_level_out_of_range():
    with pytest.raises(LevelOutOfRange):
        int_params_for(0, DEFAULT_LEVEL_PARAMS_INT)
    with pytest.raises(LevelOutOfRange):
        int_params_for(21, DEFAULT_LEVEL_PARAMS_INT)


def test_beginner_levels_have_no_negative_ranges():
    for level in range(1, 6):
        p = int_params_for(level, DEFAULT_LEVEL_PARAMS_INT)
        assert p.min_sub > 0 and p.min_add > 0, f"Level {level} có khoảng âm"


def test_reversed_range_rejected():
    int_table, frac_table = default_tables()
    int_table[4][3], int_table[4][4] = 50, 10
    with pytest.raises(InvalidLevelParams):
        validate_level_params(int_table, frac_table)


def test_non_monotonic_thresholds_rejected():
    int_table, frac_table = default_tables()
    int_table[2][0:3] = [0.8, 0.5, 0.9]
    with pytest.raises(InvalidLevelParams):
        validate_level_params(int_table, frac_table)

    int_table, frac_table = default_tables()
    frac_table[0][0] = 1.5
    with pytest.raises(InvalidLevelParams):
        validate_level_params(int_table, frac_table)


def test_wrong_shape_rejected():
    int_table, frac_table = default_tables()
    with pytest.raises(InvalidLevelParams):
        validate_level_params(int_table[:-1], frac_table)
    int_table[0] = int_table[0][:11]
    with pytest.raises(InvalidLevelParams):
        validate_level_params(int_table, frac_table)


def test_default_tables_are_copies():
    int_table, _ = default_tables()
    int_table[0][0] = 0.0
    assert DEFAULT_LEVEL_PARAMS_INT[0][0] != 0.0


def test_negative_subtraction_range_rejected_for_beginners():
    int_table, frac_table = default_tables()
    int_table[2][5] = -10
    with pytest.raises(InvalidLevelParams):
        validate_level_params(int_table, frac_table)

    int_table, frac_table = default_tables()
    int_table[5][5] = -10
    validate_level_params(int_table, frac_table)
