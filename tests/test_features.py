from fhe_demo.features import coerce_count, reduce_features, round_half_up


def test_zero_lines_gives_no_per_line_ratios() -> None:
    out = reduce_features({"characters": 10, "words": 2, "lines": 0})
    assert out["derived"] == {"wordsPerLine": None, "charsPerLine": None, "avgWordLen": 5.0}
    assert out["echo"] == {"characters": 10, "words": 2, "lines": 0}
    assert out["histogram"] is None


def test_ratios_round_to_two_decimals() -> None:
    out = reduce_features({"characters": 100, "words": 7, "lines": 3, "wordLenHist": {"3": 4, "10": 1}})
    assert out["derived"] == {"wordsPerLine": 2.33, "charsPerLine": 33.33, "avgWordLen": 14.29}
    assert out["histogram"] == {"3": 4, "10": 1}


def test_zero_words_has_no_average() -> None:
    out = reduce_features({"characters": 5, "words": 0, "lines": 1})
    assert out["derived"]["avgWordLen"] == 0.0
    assert out["derived"]["charsPerLine"] == 5.0


def test_malformed_fields_default_to_zero() -> None:
    out = reduce_features({"characters": "abc", "words": None, "lines": [1], "wordLenHist": "nope"})
    assert out["echo"] == {"characters": 0, "words": 0, "lines": 0}
    assert out["derived"] == {"wordsPerLine": None, "charsPerLine": None, "avgWordLen": None}
    assert out["histogram"] is None


def test_coerce_count() -> None:
    assert coerce_count("12") == 12
    assert coerce_count(" 2.5 ") == 2.5
    assert coerce_count(3.0) == 3
    assert coerce_count(float("inf")) == 0
    assert coerce_count("") == 0
    assert coerce_count({}) == 0


def test_ratios_round_halves_up() -> None:
    out = reduce_features({"characters": 1, "words": 1, "lines": 8})
    assert out["derived"]["charsPerLine"] == 0.13
    assert out["derived"]["wordsPerLine"] == 0.13
    assert round_half_up(1.005) == 1.0
    assert round_half_up(2.675) == 2.67
    assert round_half_up(0.375) == 0.38


def test_huge_counts_default_to_zero() -> None:
    huge = 10**400
    out = reduce_features({"characters": huge, "words": 1, "lines": 1})
    assert out["echo"]["characters"] == 0
    assert out["derived"]["avgWordLen"] == 0.0
    assert coerce_count("1e400") == 0
