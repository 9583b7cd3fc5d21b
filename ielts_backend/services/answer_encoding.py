"""
ielts_backend/services/answer_encoding.py
Answer-Encoding Normalizer

A question's correct answer is stored as one weakly-typed string. Several
encodings have accumulated over time and all of them are still in the
database:

    "Paris"                     one accepted value
    "colour|color"              synonyms, valid for every blank
    "red;blue|navy"             one group per blank, synonyms inside a group
    '["7", ["ng", "not given"]]'  JSON array, one entry per blank

The encoding is parsed ONCE into a tagged union (VariantSet, BlankGroupList,
PerBlankVariantSets) and every grader asks that object for the accepted
variants of a blank. All variants are normalized (trim, collapse internal
whitespace, lower-case) before they are stored.

NO SIDE EFFECTS - malformed JSON is treated as a plain string.
"""

import json
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple, Union

NUMERIC_PATTERN = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)$")
WHITESPACE_PATTERN = re.compile(r"\s+")

Variants = Tuple[str, ...]


def normalize_answer_text(value: Any) -> str:
    """Trim, collapse internal whitespace and lower-case a raw value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        value = "true" if value else "false"
    return WHITESPACE_PATTERN.sub(" ", str(value)).strip().lower()


def _variants(values) -> Variants:
    normalized = (normalize_answer_text(v) for v in values)
    return tuple(v for v in normalized if v)


def split_variants(segment: str) -> Variants:
    """Split one '|'-delimited group into normalized, non-empty variants."""
    return _variants(segment.split("|"))


def is_numeric_text(value: str) -> bool:
    return bool(value) and NUMERIC_PATTERN.match(value) is not None


def coerce_numeric(value: str) -> Optional[Decimal]:
    """Return the Decimal value of a numeric answer, None otherwise."""
    if not is_numeric_text(value):
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return None


def variant_matches(variants: Variants, received: Any) -> bool:
    """
    Check a single blank.

    If every accepted variant is numeric the comparison is numeric, so
    "7.0" satisfies "7". Otherwise it is an exact match on the normalized
    text. An empty variant set can never be satisfied.
    """
    if not variants:
        return False
    received_norm = normalize_answer_text(received)
    if not received_norm:
        return False
    if all(is_numeric_text(v) for v in variants):
        received_num = coerce_numeric(received_norm)
        if received_num is None:
            return False
        return any(Decimal(v) == received_num for v in variants)
    return received_norm in variants


def _pad(groups: List[Variants], blank_count: int) -> List[Variants]:
    if len(groups) < blank_count:
        groups = groups + [tuple()] * (blank_count - len(groups))
    return groups


@dataclass(frozen=True)
class VariantSet:
    """'|'-separated synonyms that apply uniformly to every blank."""
    variants: Variants

    def groups_for(self, blank_count: int = 1) -> List[Variants]:
        return [self.variants] * max(blank_count, 1)

    def scalar_variants(self) -> Variants:
        return self.variants

    def flat_variants(self) -> Variants:
        return self.variants

    @property
    def has_accepted(self) -> bool:
        return bool(self.variants)


@dataclass(frozen=True)
class BlankGroupList:
    """';'-separated groups, one per blank, '|' synonyms inside each group."""
    groups: Tuple[Variants, ...]

    def groups_for(self, blank_count: int = 1) -> List[Variants]:
        return _pad(list(self.groups), blank_count)

    def scalar_variants(self) -> Variants:
        return self.groups[0] if self.groups else tuple()

    def flat_variants(self) -> Variants:
        return tuple(v for group in self.groups for v in group)

    @property
    def has_accepted(self) -> bool:
        return any(self.groups)


@dataclass(frozen=True)
class PerBlankVariantSets:
    """
    JSON array encoding.

    Each entry is the variant set for one blank. `flat` records whether the
    array only held scalars: a flat array is also the legacy way of listing
    several acceptable answers for a single-blank question.
    """
    groups: Tuple[Variants, ...]
    flat: bool = False

    def groups_for(self, blank_count: int = 1) -> List[Variants]:
        return _pad(list(self.groups), blank_count)

    def scalar_variants(self) -> Variants:
        if self.flat:
            return self.flat_variants()
        return self.groups[0] if self.groups else tuple()

    def flat_variants(self) -> Variants:
        return tuple(v for group in self.groups for v in group)

    @property
    def has_accepted(self) -> bool:
        return any(self.groups)


AnswerEncoding = Union[VariantSet, BlankGroupList, PerBlankVariantSets]

EMPTY_ENCODING = BlankGroupList(groups=tuple())


def _parse_json_array(raw: str) -> Optional[list]:
    if not raw.startswith("["):
        return None
    try:
        parsed = json.loads(raw)
    except (ValueError, TypeError):
        return None
    return parsed if isinstance(parsed, list) else None


def _from_json_array(entries: list) -> PerBlankVariantSets:
    groups = []
    flat = True
    for entry in entries:
        if isinstance(entry, list):
            flat = False
            groups.append(_variants(entry))
        elif entry is None:
            groups.append(tuple())
        else:
            groups.append(_variants([entry]))
    return PerBlankVariantSets(groups=tuple(groups), flat=flat)


def parse_answer_encoding(raw: Any) -> AnswerEncoding:
    """
    Resolve a stored correct-answer encoding.

    Priority order:
    1. JSON array -> PerBlankVariantSets
    2. contains ';' -> BlankGroupList (split on ';', then '|')
    3. contains '|' -> VariantSet applied to every blank
    4. anything else -> BlankGroupList with a single group for blank 0

    Already-decoded lists are accepted as well.
    """
    if raw is None:
        return EMPTY_ENCODING
    if isinstance(raw, list):
        return _from_json_array(raw)

    text = str(raw).strip()
    if not text:
        return EMPTY_ENCODING

    entries = _parse_json_array(text)
    if entries is not None:
        return _from_json_array(entries)

    if ";" in text:
        return BlankGroupList(groups=tuple(split_variants(segment) for segment in text.split(";")))

    if "|" in text:
        return VariantSet(variants=split_variants(text))

    return BlankGroupList(groups=(split_variants(text),))


def parse_cell_encoding(raw: Any) -> AnswerEncoding:
    """
    Encoding of a simple_table cell.

    Table cells predate the JSON encodings: ';' separates blanks and a
    value without ';' applies to every blank of the cell.
    """
    text = raw if isinstance(raw, str) else ""
    if ";" in text:
        return BlankGroupList(groups=tuple(split_variants(segment) for segment in text.split(";")))
    return VariantSet(variants=split_variants(text))


def answer_groups(raw: Any, blank_count: int = 1) -> List[Variants]:
    """Ordered accepted-variant groups for `blank_count` blanks."""
    return parse_answer_encoding(raw).groups_for(blank_count)


def accepted_option_set(raw: Any) -> Variants:
    """
    Accepted option identifiers for set-compared question types.

    JSON arrays are flattened; any other encoding is split on '|' only, so
    "A|C" and '["A", "C"]' produce the same set.
    """
    if raw is None:
        return tuple()
    if isinstance(raw, list):
        return _from_json_array(raw).flat_variants()
    text = str(raw).strip()
    entries = _parse_json_array(text)
    if entries is not None:
        return _from_json_array(entries).flat_variants()
    return tuple(dict.fromkeys(split_variants(text)))


def submitted_option_set(value: Any) -> Variants:
    """Student selection as a de-duplicated set of option identifiers."""
    if value is None:
        return tuple()
    if isinstance(value, (list, tuple)):
        tokens = _variants(value)
    else:
        tokens = split_variants(str(value))
    return tuple(dict.fromkeys(tokens))


TRUE_FALSE_SYNONYMS = {
    "t": "true",
    "f": "false",
    "ng": "not given",
    "notgiven": "not given",
}


def normalize_true_false(value: Any) -> str:
    normalized = normalize_answer_text(value)
    return TRUE_FALSE_SYNONYMS.get(normalized, normalized)


def true_false_matches(expected: Any, received: Any) -> bool:
    expected_norm = normalize_true_false(expected)
    return bool(expected_norm) and expected_norm == normalize_true_false(received)


def option_sets_equal(expected: Variants, received: Variants) -> bool:
    """Unordered set equality; an empty expectation never matches."""
    expected_set = set(expected)
    return bool(expected_set) and expected_set == set(received)
