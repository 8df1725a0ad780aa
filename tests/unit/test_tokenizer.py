"""Tests for keyword tokenization and overlap scoring."""

import pytest

from grounding_engine.keyword_search.keyword_scorer import keyword_score, search_records
from grounding_engine.keyword_search.tokenizer import extract_terms, tokenize
from grounding_engine.models.domain import Record


def test_tokenize_basic():
    tokens = tokenize("The quick brown fox jumps over the lazy dog")
    assert "quick" in tokens
    assert "brown" in tokens
    assert "fox" in tokens
    assert "the" in tokens


def test_tokenize_drops_short_tokens():
    tokens = tokenize("I am ok at it, really")
    assert tokens == ["really"]


def test_tokenize_lowercase_and_punctuation():
    tokens = tokenize("Hello, World! How are you?")
    assert tokens == ["hello", "world", "how", "are", "you"]


def test_tokenize_empty():
    assert tokenize("") == []
    assert tokenize("   ") == []


def test_extract_terms_removes_stopwords_and_duplicates():
    terms = extract_terms("I have been feeling anxious, so anxious about exams")
    assert terms == ["feeling", "anxious", "exams"]


def test_keyword_score_full_phrase_match():
    tokens = tokenize("feeling anxious about exams")
    score, matches = keyword_score(tokens, "Feeling anxious about exams is common.")
    assert matches == 4
    # (4 * 0.2 + 0.4) * 4/4
    assert score == pytest.approx(1.2)


def test_keyword_score_partial_match_is_scaled():
    tokens = ["anxious", "exams"]
    score, matches = keyword_score(tokens, "Exams can be stressful.")
    assert matches == 1
    assert score == pytest.approx(0.2 * 0.5)


def test_keyword_score_matches_substrings():
    score, matches = keyword_score(["stress"], "Stressful weeks happen.")
    assert matches == 1
    assert score > 0


def test_keyword_score_no_match():
    assert keyword_score(["anxious"], "Depression is common.") == (0.0, 0)


def test_keyword_score_empty_query():
    assert keyword_score([], "anything") == (0.0, 0)


def test_search_records_excludes_zero_match_and_sorts():
    records = [
        Record(id="a", text="Sleep matters.", vector=[]),
        Record(id="b", text="Exams cause worry.", vector=[]),
        Record(id="c", text="Feeling anxious about exams is normal.", vector=[]),
    ]
    results = search_records("anxious about exams", records)
    assert [r.id for r, _ in results] == ["c", "b"]
    assert results[0][1] > results[1][1]
