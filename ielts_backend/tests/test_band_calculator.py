"""
Band lookup tables and writing band rounding.
"""
import pytest

from ielts_backend.services.band_calculator import (
    cap_reading_counts,
    listening_band,
    reading_band,
    round_to_nearest_half,
    writing_band,
)


@pytest.mark.parametrize("correct, band", [
    (40, 9.0), (39, 9.0), (38, 8.5), (37, 8.5), (30, 7.0), (29, 6.5),
    (23, 6.0), (16, 5.0), (10, 4.0), (3, 2.5), (2, 2.0), (0, 2.0),
])
def test_listening_boundaries(correct, band):
    assert listening_band(correct) == band


def test_reading_tables_diverge_by_exam_type():
    assert reading_band(39, "academic") == 9.0
    assert reading_band(39, "general_training") == 8.5
    assert reading_band(30, "academic") == 7.0
    assert reading_band(30, "general_training") == 6.0


def test_any_non_academic_type_uses_general_training():
    assert reading_band(40, "General") == 9.0
    assert reading_band(39, None) == 8.5
    assert reading_band(39, "ACADEMIC") == 9.0


def test_reading_count_capped_at_forty():
    assert reading_band(55, "general_training") == 9.0
    assert cap_reading_counts(45, 52) == (40, 40)
    assert cap_reading_counts(12, 20) == (12, 20)


def test_round_to_nearest_half():
    assert round_to_nearest_half(6.667) == 6.5
    assert round_to_nearest_half(6.75) == 7.0
    assert round_to_nearest_half(6.25) == 6.5
    assert round_to_nearest_half(6.2) == 6.0


def test_writing_band_weights_task_two_double():
    assert writing_band(6, 7) == 6.5
    assert writing_band(7, 7) == 7.0
    assert writing_band(5, 8) == 7.0


def test_writing_band_with_one_task():
    assert writing_band(6.4, None) == 6.5
    assert writing_band(None, 7) == 7.0
    assert writing_band(None, None) is None
