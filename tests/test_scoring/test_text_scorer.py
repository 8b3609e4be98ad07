"""
Unit tests for the Text Similarity Scorer.
"""

import pytest

from src.models.review import ReviewRecord
from src.scoring.text import TextSimilarityScorer, score_record


def make_record(title, body, rating=5, position=0):
    return ReviewRecord(
        id=f"review-{position}",
        title=title,
        body=body,
        product_id="prod_123",
        rating=rating,
        timestamp="2024-01-15T10:30:00+00:00",
        vector_index=position,
    )


@pytest.fixture
def scorer():
    return TextSimilarityScorer()


@pytest.fixture
def corpus():
    return [
        make_record(
            "Great product!",
            "This product exceeded my expectations. Great quality and fast delivery.",
            position=0,
        ),
        make_record(
            "Amazing smartphone",
            "The phone has excellent camera quality and fast performance. Battery lasts all day.",
            position=1,
        ),
        make_record(
            "Average laptop",
            "It works but the screen is dim.",
            rating=3,
            position=2,
        ),
    ]


def test_phrase_match_ranks_first(scorer, corpus):
    hits = scorer.rank("camera quality", corpus, 10)

    assert hits[0].review.title == "Amazing smartphone"
    assert hits[0].similarity_score == 1.0
    # Word "quality" in body (0.5) + half coverage (0.25) + rating 5 (0.2)
    assert hits[1].similarity_score == pytest.approx(0.95)
    # Neutral rating and no match scores zero and is dropped
    assert all(hit.review.title != "Average laptop" for hit in hits)


def test_title_match_beats_body_match(scorer):
    records = [
        make_record("Decent machine", "It has decent performance overall.", rating=1, position=0),
        make_record("Fast performance laptop", "Nothing else to say here.", rating=1, position=1),
    ]

    hits = scorer.rank("fast performance", records, 10)

    assert [hit.review.vector_index for hit in hits] == [1, 0]
    assert hits[0].similarity_score == 1.0
    assert hits[1].similarity_score == pytest.approx(0.55)


def test_title_word_weighs_more_than_body_word():
    in_title = make_record("Battery life is superb", "Nothing more to add here.", rating=1)
    in_body = make_record("Superb phone", "The battery lasts for days.", rating=1)

    # "battery": title 0.8 vs body 0.5, coverage 0.25, rating -0.2
    assert score_record("battery zeppelin", ["battery", "zeppelin"], in_title) == pytest.approx(0.85)
    assert score_record("battery zeppelin", ["battery", "zeppelin"], in_body) == pytest.approx(0.55)


def test_rating_bias_without_match():
    unrelated = "Nothing in common with the query."
    assert score_record("zeppelin", ["zeppelin"], make_record("Plain", unrelated, rating=5)) == pytest.approx(0.2)
    assert score_record("zeppelin", ["zeppelin"], make_record("Plain", unrelated, rating=4)) == pytest.approx(0.1)
    assert score_record("zeppelin", ["zeppelin"], make_record("Plain", unrelated, rating=3)) == 0.0
    assert score_record("zeppelin", ["zeppelin"], make_record("Plain", unrelated, rating=1)) == 0.0


def test_matching_is_case_insensitive():
    record = make_record("CAMERA Review", "Superb QUALITY shots.", rating=3)
    assert score_record("camera quality", ["camera", "quality"], record) == pytest.approx(1.0)


def test_ties_keep_log_order(scorer):
    records = [
        make_record("Fast performance", "Laptop with fast performance.", position=0),
        make_record("Fast performance", "Computer with fast performance.", position=1),
    ]

    hits = scorer.rank("fast performance", records, 10)

    assert [hit.similarity_score for hit in hits] == [1.0, 1.0]
    assert [hit.review.vector_index for hit in hits] == [0, 1]


def test_limit_truncates_results(scorer, corpus):
    hits = scorer.rank("quality", corpus, 1)
    assert len(hits) == 1
    assert hits[0].review.vector_index == 0


def test_empty_corpus_and_blank_query(scorer, corpus):
    assert scorer.rank("camera", [], 10) == []
    assert scorer.rank("camera", None, 10) == []
    assert scorer.rank("   ", corpus, 10) == []


def test_deterministic(scorer, corpus):
    first = scorer.rank("fast quality", corpus, 10)
    second = scorer.rank("fast quality", corpus, 10)
    assert [h.to_dict() for h in first] == [h.to_dict() for h in second]


def test_scores_within_unit_interval(scorer, corpus):
    for query in ["camera", "great product quality fast delivery", "dim screen", "x"]:
        for hit in scorer.rank(query, corpus, 10):
            assert 0.0 < hit.similarity_score <= 1.0
