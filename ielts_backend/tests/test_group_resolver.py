"""
Anchor-to-member verdict propagation.
"""
from ielts_backend.services.answer_grader import GradedRow, grade_answer
from ielts_backend.services.group_resolver import find_group_members, resolve_grouped_questions
from ielts_backend.services.question_record import QuestionRecord


def grouped_questions():
    anchor = QuestionRecord(
        id="10", type="multiple_choice", points=1, correct_answer="A|B",
        metadata={"groupRangeEnd": 11},
    )
    member = QuestionRecord(
        id="11", type="multiple_choice", points=1, correct_answer="A|B",
        metadata={"groupMemberOf": 10},
    )
    other = QuestionRecord(id="12", type="fill_blank", points=1, correct_answer="x")
    return {q.id: q for q in (anchor, member, other)}


def graded_rows(questions, answers):
    return {
        qid: GradedRow(question=questions[qid], student_answer=answer, graded=grade_answer(questions[qid], answer))
        for qid, answer in answers.items()
    }


def test_member_ids_compare_as_strings():
    questions = grouped_questions()
    assert [q.id for q in find_group_members(10, questions.values())] == ["11"]
    assert find_group_members("12", questions.values()) == []


def test_correct_anchor_propagates_points_to_unanswered_member():
    questions = grouped_questions()
    resolved = resolve_grouped_questions(graded_rows(questions, {"10": ["A", "B"]}), questions)

    member = resolved["11"]
    assert member.graded.is_correct is True
    assert member.graded.points_earned == 1
    assert member.student_answer == ["A", "B"]
    assert member.propagated_from == "10"
    assert sum(row.graded.points_earned for row in resolved.values()) == 2.0


def test_incorrect_anchor_zeroes_member_regardless_of_its_answer():
    questions = grouped_questions()
    rows = graded_rows(questions, {"10": ["A", "C"], "11": ["A", "B"]})
    assert rows["11"].graded.is_correct is True

    resolved = resolve_grouped_questions(rows, questions)
    assert resolved["11"].graded.is_correct is False
    assert resolved["11"].graded.points_earned == 0
    assert resolved["11"].student_answer == ["A", "B"]


def test_skipped_anchor_propagates_nothing():
    questions = grouped_questions()
    resolved = resolve_grouped_questions(graded_rows(questions, {"12": "x"}), questions)
    assert set(resolved) == {"12"}


def test_member_stays_ungraded_when_anchor_missing():
    questions = grouped_questions()
    rows = graded_rows(questions, {"11": ["A", "B"], "12": "x"})
    assert rows["11"].graded.is_correct is True

    resolved = resolve_grouped_questions(rows, questions)
    member = resolved["11"]
    assert member.graded.is_correct is None
    assert member.graded.points_earned == 0
    assert member.graded.max_points == 0
    assert member.graded.stored_answer == ["A", "B"]
    assert member.propagated_from is None
    assert sum(row.graded.points_earned for row in resolved.values()) == 1.0
