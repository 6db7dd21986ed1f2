from types import SimpleNamespace

import pytest

from audit_engine.models import SuggestionStatus
from audit_engine.services import mystique_aggregation as agg
from audit_engine.services.mystique_aggregation import AggregationGranularity, compute_aggregation_key


def _issue(issue_type: str, *, selector: str = "div > a", guidance: dict | None = None, description: str = "") -> dict:
    entry: dict = {"target_selector": selector, "update_from": f"<{issue_type}>"}
    if guidance is not None:
        entry["guidance"] = guidance
    return {"type": issue_type, "description": description, "htmlWithIssues": [entry]}


def _suggestion(suggestion_id: str, url: str, issues: list[dict], *, status: str = "NEW", **extra) -> dict:
    return {"id": suggestion_id, "status": status, "data": {"url": url, "issues": issues, **extra}}


def test_aggregation_key_is_deterministic() -> None:
    for issue_type in agg.ISSUE_TYPES_FOR_MYSTIQUE:
        for source in (None, "", "#main"):
            first = compute_aggregation_key(issue_type, "https://ex.com/p1", source)
            assert first == compute_aggregation_key(issue_type, "https://ex.com/p1", source)


def test_aggregation_key_per_granularity() -> None:
    assert compute_aggregation_key("aria-roles", "https://ex.com/p1", "#main") == "aria-roles"
    assert compute_aggregation_key("button-name", "https://ex.com/p1") == "https://ex.com/p1|button-name"
    assert compute_aggregation_key("button-name", "https://ex.com/p1", "#nav") == "https://ex.com/p1|button-name|#nav"
    assert compute_aggregation_key("list", "https://ex.com/p1") == "https://ex.com/p1"
    assert compute_aggregation_key("list", "https://ex.com/p1", "#footer") == "https://ex.com/p1|#footer"


def test_aggregation_key_override_changes_bucket() -> None:
    key = compute_aggregation_key(
        "button-name", "https://ex.com/p1", granularity={"button-name": "PER_TYPE"}
    )
    assert key == "button-name"
    assert agg.resolve_granularity("list", {"list": AggregationGranularity.PER_PAGE_PER_COMPONENT}) is (
        AggregationGranularity.PER_PAGE_PER_COMPONENT
    )


def test_unknown_issue_type_raises_key_error() -> None:
    with pytest.raises(KeyError):
        compute_aggregation_key("color-contrast", "https://ex.com/p1")


def test_groups_per_component_and_per_type() -> None:
    suggestions = [
        _suggestion("s1", "https://ex.com/page1", [_issue("button-name")]),
        _suggestion("s2", "https://ex.com/page1", [_issue("aria-prohibited-attr")]),
        _suggestion("s3", "https://ex.com/page2", [_issue("aria-prohibited-attr")]),
    ]

    groups = agg.process_suggestions_for_mystique(suggestions)

    assert [group.aggregation_key for group in groups] == ["https://ex.com/page1|button-name", "aria-prohibited-attr"]
    assert len(groups[0].issues_list) == 1
    assert [issue.suggestion_id for issue in groups[1].issues_list] == ["s2", "s3"]
    assert groups[1].url == "https://ex.com/page1"
    assert {issue.url for issue in groups[1].issues_list} == {"https://ex.com/page1", "https://ex.com/page2"}


@pytest.mark.parametrize("status", ["FIXED", "SKIPPED", "fixed", SuggestionStatus.fixed, SuggestionStatus.skipped])
def test_terminal_suggestions_never_contribute(status) -> None:
    suggestions = [_suggestion("done", "https://ex.com/p1", [_issue("button-name"), _issue("list")], status=status)]
    assert agg.process_suggestions_for_mystique(suggestions) == []


def test_issue_with_guidance_is_excluded() -> None:
    suggestions = [
        _suggestion(
            "s1",
            "https://ex.com/p1",
            [_issue("button-name", guidance={"generalSuggestion": "add a label"}), _issue("link-name")],
        )
    ]

    groups = agg.process_suggestions_for_mystique(suggestions)

    assert [group.aggregation_key for group in groups] == ["https://ex.com/p1|link-name"]


def test_code_fix_flow_resends_guidance_until_code_change_exists() -> None:
    guided = _issue("button-name", guidance={"generalSuggestion": "add a label"})
    pending = _suggestion("s1", "https://ex.com/p1", [guided], isCodeChangeAvailable=False)
    done = _suggestion("s2", "https://ex.com/p2", [guided], isCodeChangeAvailable=True)

    groups = agg.process_suggestions_for_mystique([pending, done], use_code_fix_flow=True)

    assert [group.aggregation_key for group in groups] == ["https://ex.com/p1|button-name"]


def test_ineligible_and_malformed_issues_are_skipped() -> None:
    suggestions = [
        _suggestion(
            "s1",
            "https://ex.com/p1",
            [
                _issue("color-contrast"),
                {"type": "button-name", "htmlWithIssues": []},
                {"type": "button-name"},
                "not-an-issue",
            ],
        ),
        {"id": "s2", "status": "NEW", "data": "broken"},
    ]
    assert agg.process_suggestions_for_mystique(suggestions) == []


@pytest.mark.parametrize("value", [None, "suggestions", {"id": "s1"}, 42])
def test_non_list_input_returns_empty(value) -> None:
    assert agg.process_suggestions_for_mystique(value) == []


def test_flattened_record_matches_expected_output() -> None:
    suggestions = [
        {
            "id": "s1",
            "status": "NEW",
            "url": "https://ex.com/p1",
            "issues": [_issue("button-name", description="Buttons must have discernible text")],
        }
    ]

    groups = agg.process_suggestions_for_mystique(suggestions)

    assert [group.to_message_data() for group in groups] == [
        {
            "aggregationKey": "https://ex.com/p1|button-name",
            "url": "https://ex.com/p1",
            "issuesList": [
                {
                    "issueName": "button-name",
                    "suggestionId": "s1",
                    "targetSelector": "div > a",
                    "faultyLine": "<button-name>",
                    "issueDescription": "Buttons must have discernible text",
                    "url": "https://ex.com/p1",
                }
            ],
        }
    ]


def test_reads_orm_like_objects_and_camel_case_entries() -> None:
    row = SimpleNamespace(
        id="row-1",
        status=SuggestionStatus.new,
        data={
            "url": "https://ex.com/p3",
            "source": "#hero",
            "issues": [
                {"type": "image-alt", "htmlWithIssues": [{"targetSelector": "img.hero", "updateFrom": "<img>"}]}
            ],
        },
    )

    groups = agg.process_suggestions_for_mystique([row])

    assert groups[0].aggregation_key == "https://ex.com/p3|image-alt|#hero"
    issue = groups[0].issues_list[0]
    assert (issue.target_selector, issue.faulty_line, issue.issue_description) == ("img.hero", "<img>", "")
