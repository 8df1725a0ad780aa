"""Tests for query expansion."""

from grounding_engine.retrieval.query_expansion import QueryExpander, word_variants


def test_expansion_starts_with_significant_terms():
    expanded = QueryExpander().expand("feeling anxious about exams")
    assert expanded.terms == ["feeling", "anxious", "exams"]
    assert expanded.expansions[:3] == ["feeling", "anxious", "exams"]


def test_expansion_is_capped():
    expanded = QueryExpander(max_terms=4).expand("stressed and depressed about relationship problems lately")
    assert len(expanded.expansions) == 4


def test_expansion_includes_synonyms_and_topics():
    expanded = QueryExpander(max_terms=20).expand("I am anxious", topics=["school"])
    assert "worried" in expanded.expansions
    assert "school" in expanded.expansions


def test_expansion_includes_entities():
    expanded = QueryExpander(max_terms=20).expand("Talking to Dr Smith helped")
    assert "dr smith" in expanded.expansions


def test_expanded_text_keeps_original_first():
    expanded = QueryExpander().expand("anxious")
    assert expanded.text.startswith("anxious")
    assert "worried" in expanded.text


def test_expansion_of_stopword_query_is_unchanged():
    expanded = QueryExpander().expand("what is it")
    assert expanded.expansions == []
    assert expanded.text == "what is it"


def test_word_variants():
    assert "worries" not in word_variants("worry")
    assert word_variants("worries") == ["worry"]
    assert word_variants("exams") == ["exam"]
    assert "cope" not in word_variants("coping")
    assert "feelings" in word_variants("feeling")
    assert "panicking" in word_variants("panicked")
