from scanredact.align import align_entity, levenshtein, similarity, word_score
from scanredact.models import BoundingBox, Label, OCRWord, RiskLevel

from conftest import make_entity, make_words


def test_person_name_pairs_adjacent_words():
    words = make_words(["John", "Smith", "lives"])
    a = align_entity(make_entity("John Smith", 0, Label.PERSON), words)
    assert a is not None
    assert a.strategy == "name_pair"
    assert a.bounding_box == words[0].bounding_box.union(words[1].bounding_box)
    assert a.text == "John Smith"


def test_no_similar_word_gives_no_alignment():
    words = make_words(["Hello", "World"])
    e = make_entity("123-45-6789", 0, Label.SSN, RiskLevel.CRITICAL)
    assert align_entity(e, words) is None


def test_token_run_spans_split_ocr_words():
    words = make_words(["SSN:", "123-45-", "6789", "issued"])
    e = make_entity("123-45-6789", 5, Label.SSN, RiskLevel.CRITICAL)
    a = align_entity(e, words)
    assert a.strategy == "token_overlap"
    assert a.bounding_box == words[1].bounding_box.union(words[2].bounding_box)
    assert a.text == "123-45- 6789"


def test_longest_run_wins():
    words = make_words(["Smith", "paid", "John", "Smith", "today"])
    e = make_entity("John Smith", 0, Label.ORGANIZATION)
    a = align_entity(e, words)
    assert a.strategy == "token_overlap"
    assert a.text == "John Smith"
    assert a.bounding_box.x == words[2].bounding_box.x


def test_non_person_labels_skip_name_pairing():
    words = make_words(["Acme", "Holdings", "Ltd"])
    a = align_entity(make_entity("Acme Holdings", 0, Label.ORGANIZATION), words)
    assert a.strategy == "token_overlap"
    assert a.text == "Acme Holdings"


def test_fuzzy_fallback_takes_top_three():
    words = make_words(["abcdeX", "abcdXX", "abcdeY", "abcdeZ", "zzz"])
    e = make_entity("abcdef", 0, Label.ORGANIZATION)
    a = align_entity(e, words)
    assert a.strategy == "fuzzy"
    assert a.text == "abcdeX abcdeY abcdeZ"


def test_fuzzy_single_word_with_ocr_typo():
    words = make_words(["Paid", "Jonathon"])
    a = align_entity(make_entity("Jonathan", 0, Label.ORGANIZATION), words)
    assert a.strategy == "fuzzy"
    assert a.bounding_box == words[1].bounding_box


def test_entity_without_alphanumerics_is_skipped():
    words = make_words(["***", "---"])
    assert align_entity(make_entity("***", 0, Label.MISC), words) is None


def test_confidence_is_weakest_word():
    words = [
        OCRWord("Jane", 0.9, BoundingBox(0, 0, 10, 10)),
        OCRWord("Roe", 0.4, BoundingBox(12, 0, 10, 10)),
    ]
    a = align_entity(make_entity("Jane Roe", 0), words)
    assert a.confidence == 0.4


def test_word_scores():
    tokens = ["john", "smith"]
    assert word_score("john", tokens, "johnsmith") == 2.0
    assert word_score("smit", tokens, "johnsmith") == 1.0
    assert word_score("nsm", tokens, "johnsmith") == 0.5
    assert word_score("j", tokens, "johnsmith") == 1.0
    assert word_score("s", tokens, "johnsmith") == 1.0
    assert word_score("lives", tokens, "johnsmith") == 0.0


def test_levenshtein_and_similarity():
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert similarity("ABC", "abc") == 1.0
    assert similarity("", "") == 1.0
    assert abs(similarity("abcdef", "abcdeX") - 5 / 6) < 1e-9


def test_initial_stays_in_the_run():
    words = make_words(["J", "Smith", "x"])
    a = align_entity(make_entity("Jo Smith", 0, Label.PERSON), words)
    assert a.strategy == "token_overlap"
    assert a.text == "J Smith"
    assert a.bounding_box == words[0].bounding_box.union(words[1].bounding_box)
