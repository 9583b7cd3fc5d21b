"""
Tests for correct-answer encoding resolution and answer normalization.
"""
from ielts_backend.services.answer_encoding import (
    BlankGroupList,
    EMPTY_ENCODING,
    PerBlankVariantSets,
    VariantSet,
    accepted_option_set,
    answer_groups,
    normalize_answer_text,
    parse_answer_encoding,
    parse_cell_encoding,
    submitted_option_set,
    true_false_matches,
    variant_matches,
)


def test_normalize_trims_collapses_and_lowercases():
    assert normalize_answer_text("  Hello   World \n") == "hello world"
    assert normalize_answer_text(None) == ""
    assert normalize_answer_text(True) == "true"
    assert normalize_answer_text(7) == "7"


def test_plain_string_is_single_group_for_first_blank():
    encoding = parse_answer_encoding("Paris")
    assert isinstance(encoding, BlankGroupList)
    assert encoding.groups_for(1) == [("paris",)]
    assert encoding.groups_for(2) == [("paris",), ()]


def test_pipe_variants_apply_to_every_blank():
    encoding = parse_answer_encoding("colour|Color")
    assert isinstance(encoding, VariantSet)
    assert encoding.groups_for(3) == [("colour", "color")] * 3


def test_semicolon_groups_with_synonyms():
    encoding = parse_answer_encoding("red; Blue|navy")
    assert isinstance(encoding, BlankGroupList)
    assert encoding.groups_for(2) == [("red",), ("blue", "navy")]


def test_json_array_gives_per_blank_sets():
    encoding = parse_answer_encoding('["7", ["NG", "not given"]]')
    assert isinstance(encoding, PerBlankVariantSets)
    assert not encoding.flat
    assert encoding.groups_for(2) == [("7",), ("ng", "not given")]


def test_flat_json_array_lists_alternatives_for_scalar_answers():
    encoding = parse_answer_encoding('["Monday", "Mon"]')
    assert encoding.flat
    assert encoding.scalar_variants() == ("monday", "mon")


def test_json_takes_priority_over_separators():
    encoding = parse_answer_encoding('["a;b", "c|d"]')
    assert encoding.groups_for(2) == [("a;b",), ("c|d",)]


def test_malformed_json_falls_back_to_plain_string():
    encoding = parse_answer_encoding("[not json")
    assert encoding.groups_for(1) == [("[not json",)]


def test_missing_encoding_pads_with_unsatisfiable_groups():
    assert parse_answer_encoding(None) is EMPTY_ENCODING
    assert parse_answer_encoding("   ") is EMPTY_ENCODING
    assert answer_groups(None, 2) == [(), ()]
    assert not variant_matches((), "anything")


def test_answer_groups_pads_short_encodings():
    assert answer_groups("a;b", 3) == [("a",), ("b",), ()]


def test_cell_encoding_without_semicolon_repeats_for_each_blank():
    assert parse_cell_encoding("red|crimson").groups_for(2) == [("red", "crimson")] * 2
    assert parse_cell_encoding("red;blue").groups_for(2) == [("red",), ("blue",)]
    assert parse_cell_encoding(None).groups_for(1) == [()]


class TestVariantMatching:

    def test_numeric_variants_compare_as_numbers(self):
        assert variant_matches(("7",), "7.0")
        assert variant_matches(("7",), " 07 ")
        assert variant_matches(("0.5",), ".5")
        assert not variant_matches(("7",), "seven")

    def test_text_variants_compare_normalized(self):
        assert variant_matches(("not given",), "Not   Given")
        assert not variant_matches(("not given",), "notgiven")

    def test_mixed_variants_use_text_comparison(self):
        assert variant_matches(("7", "seven"), "seven")
        assert not variant_matches(("7", "seven"), "7.0")

    def test_empty_submission_never_matches(self):
        assert not variant_matches(("a",), "")
        assert not variant_matches(("a",), None)


def test_option_sets_from_pipe_and_json_agree():
    assert set(accepted_option_set("A|C")) == {"a", "c"}
    assert set(accepted_option_set('["A", "C"]')) == {"a", "c"}
    assert set(submitted_option_set(["c", "A", "a"])) == {"a", "c"}
    assert set(submitted_option_set("C|A")) == {"a", "c"}


def test_true_false_synonyms():
    assert true_false_matches("TRUE", "t")
    assert true_false_matches("False", "F")
    assert true_false_matches("NOT GIVEN", "ng")
    assert true_false_matches("not given", "NotGiven")
    assert not true_false_matches("true", "ng")
    assert not true_false_matches("", "")
