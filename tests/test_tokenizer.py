"""Tests for word normalization."""

from __future__ import annotations

from recitation_coach.core.tokenizer import tokenize


class TestTokenize:
    def test_em_dash_and_punctuation(self):
        assert tokenize("Love—your neighbor, as yourself.") == [
            "love", "your", "neighbor", "as", "yourself",
        ]

    def test_empty_and_whitespace(self):
        assert tokenize("") == []
        assert tokenize("   \n\t ") == []

    def test_lowercases(self):
        assert tokenize("For GOD So") == ["for", "god", "so"]

    def test_en_dash_breaks_words(self):
        assert tokenize("one–two") == ["one", "two"]

    def test_quotes_removed(self):
        assert tokenize("He said, “Follow me.”") == ["he", "said", "follow", "me"]

    def test_apostrophe_splits_contraction(self):
        assert tokenize("don't") == ["don", "t"]

    def test_idempotent_on_same_input(self):
        text = "In the beginning, God created the heavens and the earth."
        assert tokenize(text) == tokenize(text)

    def test_retokenizing_joined_output_is_stable(self):
        words = tokenize("Jesus wept!")
        assert tokenize(" ".join(words)) == words

    def test_only_punctuation(self):
        assert tokenize("...!?") == []
