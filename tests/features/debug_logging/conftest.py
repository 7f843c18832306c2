"""BDD step definitions for debug logging features."""

import pytest
from pytest_bdd import given, parsers, then, when
from tests.features.debug_logging.steps_helpers import (
    LoggingScenarioContext,
    build_logger,
    require_entry,
    require_logger,
    run_logged,
)
from tests.conftest import FailingStore

from debuglog.core.exceptions import ValidationError
from debuglog.core.ports import CI_CD_PIPELINES, DEBUG_LOGS


@pytest.fixture
def ctx() -> LoggingScenarioContext:
    """Fresh scenario context for each test."""
    return LoggingScenarioContext()


# === Background Steps ===
@given("a debug logger outside CI")
def step_logger_outside_ci(ctx: LoggingScenarioContext) -> None:
    build_logger(ctx, environ={})


@given(
    parsers.parse(
        'a debug logger running in GitHub Actions run "{run_id}" on branch "{branch}"'
    )
)
def step_logger_in_ci(ctx: LoggingScenarioContext, run_id: str, branch: str) -> None:
    build_logger(
        ctx,
        environ={
            "CI": "true",
            "GITHUB_RUN_ID": run_id,
            "GITHUB_REF_NAME": branch,
            "GITHUB_SHA": "abc123",
        },
    )


@given("the primary store is unavailable")
def step_store_unavailable(ctx: LoggingScenarioContext) -> None:
    ctx.store = FailingStore()
    build_logger(ctx, environ={})


# === Logging Steps ===
@given(parsers.parse('an error "{title}" was logged in category "{category}"'))
def step_earlier_error(ctx: LoggingScenarioContext, title: str, category: str) -> None:
    ctx.earlier = run_logged(ctx, require_logger(ctx).log_error(category, title, ""))
    ctx.entry = ctx.earlier


@when(parsers.parse('a follow-up error "{title}" is logged in category "{category}"'))
def step_log_error(ctx: LoggingScenarioContext, title: str, category: str) -> None:
    ctx.entry = run_logged(ctx, require_logger(ctx).log_error(category, title, ""))


@when(
    parsers.parse(
        'an error "{title}" is logged in category "{category}" '
        'with message "{message}"'
    )
)
def step_log_error_with_message(
    ctx: LoggingScenarioContext, title: str, category: str, message: str
) -> None:
    try:
        ctx.entry = run_logged(
            ctx,
            require_logger(ctx).log_error(category, title, "", error_message=message),
        )
    except ValidationError as exc:
        ctx.error = exc


@when(parsers.parse('the issue is resolved with "{solution}"'))
def step_resolve(ctx: LoggingScenarioContext, solution: str) -> None:
    entry = require_entry(ctx)
    ctx.entry = run_logged(ctx, require_logger(ctx).resolve_issue(entry.id, solution))


@when(parsers.parse('the "{stage}" stage reports "{status}"'))
def step_cicd_event(ctx: LoggingScenarioContext, stage: str, status: str) -> None:
    ctx.entry = run_logged(
        ctx, require_logger(ctx).log_cicd_event(stage, status, f"{stage} {status}")
    )


# === Assertion Steps ===
@then(parsers.parse('the entry has tags "{tags}"'))
def step_entry_tags(ctx: LoggingScenarioContext, tags: str) -> None:
    expected = tuple(tag.strip() for tag in tags.split(","))
    assert require_entry(ctx).tags == expected


@then(parsers.parse('the entry status is "{status}"'))
def step_entry_status(ctx: LoggingScenarioContext, status: str) -> None:
    assert require_entry(ctx).status.value == status


@then(parsers.parse('the entry title is "{title}"'))
def step_entry_title(ctx: LoggingScenarioContext, title: str) -> None:
    assert require_entry(ctx).title == title


@then(parsers.parse('the entry category is "{category}"'))
def step_entry_category(ctx: LoggingScenarioContext, category: str) -> None:
    assert require_entry(ctx).category.value == category


@then(parsers.parse("the monitoring sink captured {count:d} exception"))
def step_sink_exceptions(ctx: LoggingScenarioContext, count: int) -> None:
    assert len(ctx.sink.exceptions) == count


@then("the entry is in the primary store and the local cache")
def step_in_both_tiers(ctx: LoggingScenarioContext) -> None:
    entry = require_entry(ctx)
    assert [r["log_id"] for r in ctx.store.records(DEBUG_LOGS)] == [entry.id]
    assert [r["id"] for r in ctx.cache.load()] == [entry.id]


@then("the entry is only in the local cache")
def step_only_in_cache(ctx: LoggingScenarioContext) -> None:
    entry = require_entry(ctx)
    assert ctx.store.attempts > 0
    assert [r["id"] for r in ctx.cache.load()] == [entry.id]


@then("the entry is related to the earlier entry")
def step_related(ctx: LoggingScenarioContext) -> None:
    assert ctx.earlier is not None
    assert require_entry(ctx).related_issues == (ctx.earlier.id,)


@then(parsers.parse("there are {count:d} unresolved issues"))
def step_unresolved_count(ctx: LoggingScenarioContext, count: int) -> None:
    assert len(run_logged(ctx, require_logger(ctx).get_unresolved_issues())) == count


@then("the call is rejected with a validation error")
def step_rejected(ctx: LoggingScenarioContext) -> None:
    assert isinstance(ctx.error, ValidationError)


@then("the buffer is empty")
def step_buffer_empty(ctx: LoggingScenarioContext) -> None:
    assert require_logger(ctx).entries == ()


@then(
    parsers.parse(
        'a pipeline record is written with status "{status}" and type "{kind}"'
    )
)
def step_pipeline_record(ctx: LoggingScenarioContext, status: str, kind: str) -> None:
    [record] = ctx.store.records(CI_CD_PIPELINES)
    assert record["status"] == status
    assert record["type"] == kind
    assert record["user_id"] == "bdd-user"


@then("no pipeline record is written")
def step_no_pipeline_record(ctx: LoggingScenarioContext) -> None:
    assert ctx.store.records(CI_CD_PIPELINES) == []
