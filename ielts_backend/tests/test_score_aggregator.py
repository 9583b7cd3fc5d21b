"""
Session totals, percentages and bands from graded rows.
"""
from ielts_backend.config.feature_flags import FeatureFlags
from ielts_backend.services.answer_grader import GradedRow, grade_answer
from ielts_backend.services.question_record import QuestionRecord
from ielts_backend.services.score_aggregator import aggregate_session_score, calculate_percentage


def row(question_type, answer, correct_answer=None, points=1.0, section=None, metadata=None,
        question_id="q", manual_points=None):
    question = QuestionRecord(
        id=question_id, type=question_type, points=points, correct_answer=correct_answer,
        metadata=metadata or {}, section_type=section,
    )
    return GradedRow(question=question, student_answer=answer,
                     graded=grade_answer(question, answer, manual_points=manual_points))


def test_percentage_of_zero_maximum_is_zero():
    assert calculate_percentage(0, 0) == 0.0
    assert calculate_percentage(3, 4) == 75.0


def test_totals_and_percentage():
    rows = [
        row("fill_blank", "7", "7", points=2, question_id="1"),
        row("true_false", "ng", "false", points=1, question_id="2"),
        row("multiple_choice", "A", "A", points=1, question_id="3"),
    ]
    score = aggregate_session_score(rows)
    assert score.total_score == 3
    assert score.max_possible_score == 4
    assert score.percentage == 75.0


def test_containers_do_not_count_towards_maximum():
    rows = [
        row("table_fill_blank", ["a"], "a", points=5, question_id="1"),
        row("fill_blank", "a", "a", points=1, question_id="2"),
    ]
    score = aggregate_session_score(rows)
    assert score.max_possible_score == 1
    assert score.percentage == 100.0


def test_simple_table_counts_its_cells():
    metadata = {"simpleTable": {"rows": [[
        {"type": "question", "questionType": "fill_blank", "correctAnswer": "red;blue", "points": 1},
    ]]}}
    rows = [row("simple_table", {"cells": {"0_0": ["red", "blue"]}}, points=10, metadata=metadata,
                section="listening")]
    score = aggregate_session_score(rows)
    assert score.total_score == 2
    assert score.max_possible_score == 2
    assert (score.listening_correct, score.listening_total) == (2, 2)


def test_listening_band_from_section_units():
    rows = [row("fill_blank", "x", "x", section="listening", question_id=str(i)) for i in range(39)]
    rows.append(row("fill_blank", "y", "x", section="listening", question_id="39"))
    score = aggregate_session_score(rows)
    assert score.listening_correct == 39
    assert score.listening_band == 9.0
    assert score.reading_band is None


def test_reading_band_depends_on_exam_type():
    rows = [row("fill_blank", "x", "x", section="reading", question_id=str(i)) for i in range(39)]
    assert aggregate_session_score(rows, "academic").reading_band == 9.0
    assert aggregate_session_score(rows, "general_training").reading_band == 8.5


def test_multi_blank_fill_blank_counts_each_blank_unless_combined():
    split = row("fill_blank", ["red", "green"], "red;blue", section="reading")
    combined = row("fill_blank", ["red", "green"], "red;blue", section="reading",
                   metadata={"combineBlanks": True})
    assert aggregate_session_score([split]).reading_correct == 1
    assert aggregate_session_score([split]).reading_total == 2
    assert aggregate_session_score([combined]).reading_total == 1


def test_writing_only_session_reports_the_band():
    rows = [
        row("writing_task1", "text", points=9, manual_points=6, question_id="1"),
        row("essay", "text", points=9, manual_points=7, question_id="2"),
    ]
    score = aggregate_session_score(rows)
    assert score.writing_band == 6.5
    assert score.total_score == 6.5
    assert score.max_possible_score == 9.0


def test_writing_band_replaces_the_sum_in_mixed_sessions():
    rows = [
        row("fill_blank", "7", "7", points=1, section="listening", question_id="1"),
        row("writing_task1", "text", points=9, manual_points=6, question_id="2"),
        row("essay", "text", points=9, manual_points=7, question_id="3"),
    ]
    score = aggregate_session_score(rows)
    assert score.writing_band == 6.5
    assert score.total_score == 6.5
    assert score.max_possible_score == 9.0
    assert score.listening_correct == 1


def test_writing_override_can_be_disabled(monkeypatch):
    monkeypatch.setattr(FeatureFlags, "FEATURE_WRITING_BAND_OVERRIDE", False)
    rows = [
        row("writing_task1", "text", points=9, manual_points=6, question_id="1"),
        row("essay", "text", points=9, manual_points=7, question_id="2"),
    ]
    score = aggregate_session_score(rows)
    assert score.writing_band == 6.5
    assert score.total_score == 13
