"""Challenge text to candidate label extraction."""

from snapquest.verification.keywords import MAX_KEYWORDS, challenge_prompt, extract_keywords


class TestExtractKeywords:

    def test_known_phrase_maps_to_labels(self):
        assert extract_keywords("Закат") == ["sunset", "golden hour", "evening sky", "orange sky", "sun setting"]

    def test_case_insensitive(self):
        assert extract_keywords("ЗАКАТ над рекой")[0] == "sunset"

    def test_phrases_concatenate_in_table_order(self):
        labels = extract_keywords("Тень от цветок")
        assert labels[:4] == ["shadow", "silhouette", "dark shadow", "shadows"]
        assert "flower" in labels

    def test_duplicates_removed(self):
        # "тень" and "силуэт" both contribute "silhouette"
        labels = extract_keywords("тень и силуэт")
        assert labels.count("silhouette") == 1

    def test_capped_at_eight(self):
        labels = extract_keywords("луч света и закат")
        assert len(labels) == MAX_KEYWORDS
        assert labels[0] == "light ray"

    def test_fallback_to_long_words(self):
        assert extract_keywords("Red bicycle, parked outside!") == ["bicycle", "parked", "outside"]

    def test_fallback_keeps_short_words_when_no_long_ones(self):
        assert extract_keywords("a cat") == ["a", "cat"]

    def test_fallback_takes_at_most_five_words(self):
        labels = extract_keywords("alpha bravo charlie delta foxtrot hotel india")
        assert labels == ["alpha", "bravo", "charlie", "delta", "foxtrot"]

    def test_empty_text(self):
        assert extract_keywords("") == []
        assert extract_keywords("   ") == []

    def test_deterministic(self):
        text = "Ночной город и отражение"
        assert extract_keywords(text) == extract_keywords(text)


class TestChallengePrompt:

    def test_title_only(self):
        assert challenge_prompt("Кофе") == "Кофе"

    def test_title_and_description(self):
        assert challenge_prompt("Кофе", "утром") == "Кофе утром"
