from __future__ import annotations

import asyncio

import pytest

from core.config import LivenessConfig, ProcessingConfig
from core.filter_rules import FilterList
from core.host_cache import HostLookupCache
from core.liveness import DeadDomainResolver, LivenessServiceError
from core.models import Action, LintResult, LivenessResponse, Verdict
from core.processor import COMMENT_OUT_PREFIX, FilterListProcessor, RuleLinter, apply_results
from fakes import FakeLivenessClient, FakeLookup, FakeReview, FakeSleep, FakeStorage

FILTER = "\n".join(
    [
        "! Title: test",
        "||example.org^",
        "||example.dead^",
        "example.org,example.dead##banner",
        "||example.org^$domain=example.org|example.dead",
        "~example.dead#@#banner",
        "##generic",
        "",
    ]
)


def _processor(
    client: FakeLivenessClient,
    storage: FakeStorage,
    review: FakeReview,
    concurrency: int = 10,
    comment_out: bool = False,
) -> FilterListProcessor:
    resolver = DeadDomainResolver(client, HostLookupCache(FakeLookup()), LivenessConfig(), sleep=FakeSleep())
    return FilterListProcessor(
        linter=RuleLinter(resolver),
        storage=storage,
        review=review,
        config=ProcessingConfig(concurrency=concurrency, comment_out=comment_out),
    )


def test_process_file_applies_confirmed_edits() -> None:
    storage = FakeStorage({"filter.txt": FILTER})
    review = FakeReview()
    processor = _processor(FakeLivenessClient({"example.dead"}), storage, review)

    report = asyncio.run(processor.process_file("filter.txt"))

    assert [result.line_number for result in review.issues] == [3, 4, 5, 6]
    assert [result.verdict.action for result in review.issues] == [
        Action.REMOVE,
        Action.REWRITE,
        Action.REWRITE,
        Action.REMOVE,
    ]
    assert review.files == [("filter.txt", 2, 2)]
    assert storage.files["filter.txt"] == "\n".join(
        [
            "! Title: test",
            "||example.org^",
            "example.org##banner",
            "||example.org^$domain=example.org",
            "##generic",
            "",
        ]
    )
    assert report.written
    assert (report.rules_total, report.issues, report.removed, report.modified) == (7, 4, 2, 2)


def test_only_accepted_issues_are_applied() -> None:
    storage = FakeStorage({"filter.txt": FILTER})
    review = FakeReview(accept_issue=lambda result: result.line_number == 4)
    processor = _processor(FakeLivenessClient({"example.dead"}), storage, review)

    asyncio.run(processor.process_file("filter.txt"))

    lines = storage.files["filter.txt"].split("\n")
    assert lines[2] == "||example.dead^"
    assert lines[3] == "example.org##banner"
    assert lines[4] == "||example.org^$domain=example.org|example.dead"


def test_declined_file_is_not_written() -> None:
    storage = FakeStorage({"filter.txt": FILTER})
    review = FakeReview(accept_file=False)
    processor = _processor(FakeLivenessClient({"example.dead"}), storage, review)

    report = asyncio.run(processor.process_file("filter.txt"))

    assert storage.writes == []
    assert not report.written
    assert report.issues == 4


def test_no_accepted_issues_skips_file_confirmation() -> None:
    storage = FakeStorage({"filter.txt": FILTER})
    review = FakeReview(accept_issue=False)
    processor = _processor(FakeLivenessClient({"example.dead"}), storage, review)

    asyncio.run(processor.process_file("filter.txt"))

    assert review.files == []
    assert storage.writes == []


def test_comment_out_replaces_removed_rules() -> None:
    storage = FakeStorage({"filter.txt": "||example.dead^\n||example.org^\n"})
    processor = _processor(FakeLivenessClient({"example.dead"}), storage, FakeReview(), comment_out=True)

    asyncio.run(processor.process_file("filter.txt"))

    assert storage.files["filter.txt"] == f"{COMMENT_OUT_PREFIX}||example.dead^\n||example.org^\n"


def test_line_endings_are_preserved() -> None:
    content = "||example.dead^\r\n||example.org^$domain=example.org|example.dead\r\n! end"
    storage = FakeStorage({"filter.txt": content})
    processor = _processor(FakeLivenessClient({"example.dead"}), storage, FakeReview())

    asyncio.run(processor.process_file("filter.txt"))

    assert storage.files["filter.txt"] == "||example.org^$domain=example.org\r\n! end"


def test_service_failure_aborts_the_file() -> None:
    storage = FakeStorage({"filter.txt": FILTER})
    review = FakeReview()
    client = FakeLivenessClient(responses=[LivenessResponse(status=500)])
    processor = _processor(client, storage, review)

    with pytest.raises(LivenessServiceError):
        asyncio.run(processor.process_file("filter.txt"))

    assert review.issues == []
    assert storage.writes == []


def test_unparsable_rules_are_skipped() -> None:
    storage = FakeStorage({"filter.txt": "||example.dead^$third-party,\nexample.dead##banner\n"})
    review = FakeReview()
    processor = _processor(FakeLivenessClient({"example.dead"}), storage, review)

    asyncio.run(processor.process_file("filter.txt"))

    assert [result.line_number for result in review.issues] == [2]
    assert storage.files["filter.txt"] == "||example.dead^$third-party,\n"


def test_rules_without_domains_never_reach_the_service() -> None:
    client = FakeLivenessClient({"example.dead"})
    storage = FakeStorage({"filter.txt": "! comment\n##banner\n$script,third-party\n||1.2.3.4^\n"})
    review = FakeReview()
    processor = _processor(client, storage, review)

    report = asyncio.run(processor.process_file("filter.txt"))

    assert client.calls == []
    assert report.issues == 0
    assert storage.writes == []


def test_empty_file() -> None:
    review = FakeReview()
    processor = _processor(FakeLivenessClient(), FakeStorage({"empty.txt": ""}), review)

    report = asyncio.run(processor.process_file("empty.txt"))

    assert report.rules_total == 0
    assert review.issues == []


def test_concurrency_is_bounded() -> None:
    client = FakeLivenessClient({f"example{i}.dead" for i in range(20)}, delay=0.01)
    processor = _processor(client, FakeStorage(), FakeReview(), concurrency=3)
    filter_list = FilterList.parse("".join(f"||example{i}.dead^\n" for i in range(20)))

    results = asyncio.run(processor.lint_list(filter_list))

    assert client.max_in_flight == 3
    assert [result.line_number for result in results] == list(range(1, 21))


def test_apply_results_goes_bottom_up() -> None:
    filter_list = FilterList.parse("a\nb\nc\nd\ne\n")
    results = [
        LintResult(2, "b", Verdict.remove(("b.dead",))),
        LintResult(4, "d", Verdict.rewrite("d2", ("d.dead",))),
        LintResult(3, "c", Verdict.remove(("c.dead",))),
    ]

    apply_results(filter_list, results)

    assert filter_list.generate() == "a\nd2\ne\n"


def test_apply_results_rejects_stale_lines() -> None:
    filter_list = FilterList.parse("a\nb\n")

    with pytest.raises(ValueError):
        apply_results(filter_list, [LintResult(2, "changed", Verdict.remove(("x.dead",)))])


def test_invalid_concurrency_is_rejected() -> None:
    with pytest.raises(ValueError):
        _processor(FakeLivenessClient(), FakeStorage(), FakeReview(), concurrency=0)
