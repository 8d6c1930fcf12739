from models import ProviderUnavailable
from pipeline import cascade


def test_first_provider_with_items_wins(make_provider, make_items):
    first = make_provider("perplexity", confidence=0.3, items=make_items(1))
    second = make_provider("gemini", confidence=0.99, items=make_items(5))

    outcome = cascade.select([first, second], "q")

    assert outcome.state == cascade.SELECTED
    assert outcome.provider == "perplexity"
    assert second.calls == 0


def test_later_confidence_never_beats_order(make_provider, make_items):
    providers = [
        make_provider("a", unavailable=True),
        make_provider("b", items=[]),
        make_provider("c", confidence=0.4, items=make_items(2)),
        make_provider("d", confidence=1.0, items=make_items(9)),
    ]

    outcome = cascade.select(providers, "q")

    assert outcome.provider == "c"
    assert outcome.index == 2
    assert outcome.attempts == [
        ("a", cascade.UNAVAILABLE), ("b", cascade.EMPTY), ("c", cascade.SELECTED)]
    assert providers[3].calls == 0


def test_hard_failures_fall_through(make_provider, make_items):
    providers = [
        make_provider("a", error=ProviderUnavailable("a", "HTTP 500")),
        make_provider("b", error=RuntimeError("boom")),
        make_provider("c", items=make_items(1)),
    ]

    outcome = cascade.select(providers, "q")

    assert outcome.provider == "c"
    assert [a[1] for a in outcome.attempts] == [cascade.FAILED, cascade.FAILED, cascade.SELECTED]


def test_exhausted_when_nobody_has_items(make_provider):
    providers = [make_provider("a", unavailable=True), make_provider("b", items=[])]

    outcome = cascade.select(providers, "q")

    assert outcome.state == cascade.EXHAUSTED
    assert outcome.result is None
    assert outcome.provider is None
    assert len(outcome.attempts) == 2


def test_empty_provider_list_is_exhausted():
    assert cascade.select([], "q").state == cascade.EXHAUSTED


def test_report_counts_calls(make_provider, make_items):
    providers = [make_provider("a", unavailable=True), make_provider("b", items=make_items(1))]
    outcome = cascade.select(providers, "q")
    assert outcome.selected
    # report is optional; counts go to a fresh one when omitted
    from models import StepReport
    report = StepReport("cascade")
    cascade.select(providers, "q", report)
    assert report.provider_calls == 2
    assert report.provider_failures == 1
    assert report.provider_successes == 1
