import random

from scanredact.models import Label, RedactionPolicy, RiskLevel
from scanredact.reconcile import reconcile

from conftest import make_entity


def test_higher_risk_wins_overlap():
    account = make_entity(
        "1234567890", 10, Label.ACCOUNT_NUMBER, RiskLevel.CRITICAL, confidence=0.95
    )
    misc = make_entity("1234567890", 10, Label.MISC, RiskLevel.HIGH, confidence=0.8)
    assert reconcile([misc, account], 0.7) == [account]


def test_confidence_breaks_risk_ties():
    low = make_entity("Jane Doe", 0, confidence=0.75)
    high = make_entity("Jane", 0, confidence=0.9)
    assert reconcile([low, high], 0.5) == [high]


def test_earliest_start_then_longest_span():
    a = make_entity("abcd", 0)
    b = make_entity("cdef", 2)
    assert reconcile([b, a]) == [a]
    short = make_entity("ab", 0)
    long = make_entity("abcd", 0)
    assert reconcile([short, long]) == [long]


def test_below_threshold_dropped_before_resolution():
    weak = make_entity("123", 0, risk=RiskLevel.CRITICAL, confidence=0.4)
    ok = make_entity("1234", 0, risk=RiskLevel.LOW, confidence=0.8)
    assert reconcile([weak, ok], 0.7) == [ok]


def test_touching_spans_both_kept():
    a = make_entity("abc", 0)
    b = make_entity("def", 3)
    assert reconcile([b, a]) == [a, b]


def test_single_detector_output_unchanged():
    ents = [make_entity("aa", 0), make_entity("bb", 5), make_entity("cc", 9)]
    shuffled = [ents[2], ents[0], ents[1]]
    out = reconcile(shuffled, 0.0)
    assert out == ents
    assert all(o is e for o, e in zip(out, ents))


def test_output_never_overlaps():
    rng = random.Random(7)
    risks = list(RiskLevel)
    cands = []
    for _ in range(300):
        start = rng.randrange(0, 200)
        length = rng.randrange(1, 15)
        cands.append(
            make_entity(
                "x" * length,
                start,
                risk=rng.choice(risks),
                policy=RedactionPolicy.MASK,
                confidence=round(rng.uniform(0.5, 1.0), 2),
            )
        )
    out = reconcile(cands, 0.6)
    assert out == sorted(out, key=lambda e: e.start)
    for i, a in enumerate(out):
        for b in out[i + 1 :]:
            assert not a.overlaps(b)
