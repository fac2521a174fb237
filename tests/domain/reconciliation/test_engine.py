from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from adosync.domain.licensing import CANONICAL_LABELS, LicenseMapper
from adosync.domain.model import (
    AddOutcome,
    FailedOutcome,
    NoChangeOutcome,
    OutcomeKind,
    Tier,
    UpdateOutcome,
)
from adosync.domain.reconciliation import ReconciliationEngine, build_remote_index
from adosync.domain.reconciliation.engine import EXTERNAL_LICENSE_WARNING
from tests.helpers.directory import (
    FakeDirectory,
    FixedClock,
    RecordingSink,
    make_entity,
    make_record,
)

if TYPE_CHECKING:
    from adosync.domain.model import Outcome


def _engine(
    directory: FakeDirectory,
    *,
    sink: RecordingSink | None = None,
    clock: FixedClock | None = None,
) -> ReconciliationEngine:
    return ReconciliationEngine(writer=directory, sink=sink, clock=clock or FixedClock())


def test_empty_pass_has_zero_counts(directory: FakeDirectory) -> None:
    summary = _engine(directory).reconcile([], [], preview=False)

    assert (summary.added, summary.updated, summary.unchanged, summary.failed) == (0, 0, 0, 0)
    assert summary.tier_histogram == {}
    assert summary.outcomes == ()
    assert directory.mutations == 0


def test_preview_add_does_not_call_directory(directory: FakeDirectory) -> None:
    summary = _engine(directory).reconcile([make_record("a@x.com", "Basic")], [], preview=True)

    (outcome,) = summary.outcomes
    assert isinstance(outcome, AddOutcome)
    assert "Will be added" in outcome.status
    assert summary.added == 1
    assert directory.created == []


def test_new_stakeholder_is_created_with_basic(directory: FakeDirectory) -> None:
    summary = _engine(directory).reconcile(
        [make_record("a@x.com", "Stakeholder", display_name="Ann")],
        [],
        preview=False,
    )

    assert directory.created == [("a@x.com", "Ann", Tier.BASIC)]
    (outcome,) = summary.outcomes
    assert isinstance(outcome, AddOutcome)
    assert outcome.status == "Added as Basic (adjust to Stakeholder manually if needed)"
    assert any("cannot be assigned to new users" in warning for warning in outcome.warnings)
    assert summary.added == 1


def test_preview_add_notes_floor_substitution(directory: FakeDirectory) -> None:
    summary = _engine(directory).reconcile(
        [make_record("a@x.com", "GitHub Enterprise")], [], preview=True
    )

    (outcome,) = summary.outcomes
    assert outcome.status == (
        "Will be added as Basic (lowest tier cannot be assigned on creation)"
    )


def test_differing_tier_is_updated(directory: FakeDirectory) -> None:
    remote = [make_entity("a@x.com", Tier.STAKEHOLDER, remote_id="r-1")]

    summary = _engine(directory).reconcile(
        [make_record("a@x.com", "Basic")], remote, preview=False
    )

    (outcome,) = summary.outcomes
    assert isinstance(outcome, UpdateOutcome)
    assert outcome.prior_label == "Stakeholder"
    assert outcome.status == "Updated successfully"
    assert outcome.remote_id == "r-1"
    assert directory.updated == [("r-1", Tier.BASIC)]
    assert summary.updated == 1


@pytest.mark.parametrize("preview", [True, False])
def test_matching_tier_is_left_alone(directory: FakeDirectory, preview: bool) -> None:
    remote = [make_entity("a@x.com", Tier.BASIC)]

    summary = _engine(directory).reconcile(
        [make_record("a@x.com", "Basic")], remote, preview=preview
    )

    (outcome,) = summary.outcomes
    assert isinstance(outcome, NoChangeOutcome)
    assert outcome.status == "No change needed"
    assert summary.unchanged == 1
    assert directory.mutations == 0


def test_rejected_create_becomes_failed(directory: FakeDirectory) -> None:
    directory.reject_create.add("a@x.com")

    summary = _engine(directory).reconcile([make_record("a@x.com", "Basic")], [], preview=False)

    (outcome,) = summary.outcomes
    assert isinstance(outcome, FailedOutcome)
    assert outcome.attempted is OutcomeKind.ADD
    assert outcome.status == "Failed to add"
    assert not outcome.success
    assert summary.failed == 1
    assert summary.added == 0


def test_rejected_update_becomes_failed(directory: FakeDirectory) -> None:
    directory.reject_update.add("r-1")
    remote = [make_entity("a@x.com", Tier.BASIC, remote_id="r-1")]

    summary = _engine(directory).reconcile(
        [make_record("a@x.com", "Basic + Test Plans")], remote, preview=False
    )

    (outcome,) = summary.outcomes
    assert isinstance(outcome, FailedOutcome)
    assert outcome.attempted is OutcomeKind.UPDATE
    assert outcome.prior_label == "Basic"
    assert summary.failed == 1
    assert summary.updated == 0


def test_exception_for_one_user_does_not_stop_the_pass(directory: FakeDirectory) -> None:
    directory.explode_on.add("b@x.com")
    records = [
        make_record("a@x.com", "Basic"),
        make_record("b@x.com", "Basic"),
        make_record("c@x.com", "Basic"),
    ]

    summary = _engine(directory).reconcile(records, [], preview=False)

    assert [outcome.identity_key for outcome in summary.outcomes] == [
        "a@x.com",
        "b@x.com",
        "c@x.com",
    ]
    failed = summary.outcomes[1]
    assert isinstance(failed, FailedOutcome)
    assert failed.status == "Error occurred"
    assert "connection reset" in failed.error
    assert summary.added == 2
    assert summary.failed == 1


def test_counts_cover_every_non_blank_record(directory: FakeDirectory) -> None:
    directory.reject_update.add("id-c")
    remote = [
        make_entity("b@x.com", Tier.BASIC),
        make_entity("c@x.com", Tier.BASIC),
    ]
    records = [
        make_record("a@x.com", "Basic"),
        make_record("b@x.com", "Basic"),
        make_record("c@x.com", "Stakeholder"),
        make_record("   ", "Basic"),
    ]

    summary = _engine(directory).reconcile(records, remote, preview=False)

    assert summary.total_desired == 3
    assert summary.total_remote == 2
    assert summary.added + summary.updated + summary.unchanged + summary.failed == 3
    assert (summary.added, summary.unchanged, summary.failed) == (1, 1, 1)


def test_histogram_uses_requested_labels_including_failures(directory: FakeDirectory) -> None:
    directory.reject_create.add("c@x.com")
    records = [
        make_record("a@x.com", "Basic"),
        make_record("b@x.com", "Visual Studio Subscriber"),
        make_record("c@x.com", "Basic"),
    ]

    summary = _engine(directory).reconcile(records, [], preview=False)

    assert summary.tier_histogram == {"Basic": 2, "Visual Studio Subscriber": 1}


def test_external_license_update_is_advisory(directory: FakeDirectory) -> None:
    remote = [make_entity("a@x.com", Tier.VISUAL_STUDIO_SUBSCRIBER, licensing_source="msdn")]

    preview = _engine(directory).reconcile(
        [make_record("a@x.com", "Basic")], remote, preview=True
    )
    live = _engine(directory).reconcile([make_record("a@x.com", "Basic")], remote, preview=False)

    (planned,) = preview.outcomes
    (applied,) = live.outcomes
    assert planned.status == "Will be updated (external license source - may not take effect)"
    assert applied.status == "Updated successfully (external license source - verify in portal)"
    assert EXTERNAL_LICENSE_WARNING in applied.warnings
    assert applied.success


def test_unknown_label_is_reported_on_the_outcome(directory: FakeDirectory) -> None:
    remote = [make_entity("a@x.com", Tier.STAKEHOLDER)]

    summary = _engine(directory).reconcile(
        [make_record("a@x.com", "Premium Gold")], remote, preview=False
    )

    (outcome,) = summary.outcomes
    assert isinstance(outcome, NoChangeOutcome)
    assert outcome.warnings == ("Unknown access level 'Premium Gold'; treated as Stakeholder",)


def test_blank_label_is_updated_to_lowest_tier(directory: FakeDirectory) -> None:
    remote = [make_entity("a@x.com", Tier.BASIC, remote_id="r-1")]

    summary = _engine(directory).reconcile([make_record("a@x.com", "")], remote, preview=False)

    (outcome,) = summary.outcomes
    assert isinstance(outcome, UpdateOutcome)
    assert directory.updated == [("r-1", Tier.STAKEHOLDER)]
    assert outcome.warnings[0].startswith("No access level given")


def test_identity_match_ignores_case(directory: FakeDirectory) -> None:
    remote = [make_entity("Ann@X.com", Tier.BASIC)]

    summary = _engine(directory).reconcile(
        [make_record("  ANN@x.COM ", "Basic")], remote, preview=False
    )

    assert summary.unchanged == 1


def test_preview_is_repeatable(directory: FakeDirectory) -> None:
    remote = [
        make_entity("b@x.com", Tier.STAKEHOLDER),
        make_entity("c@x.com", Tier.BASIC, licensing_source="msdn"),
    ]
    records = [
        make_record("a@x.com", "Stakeholder"),
        make_record("b@x.com", "Basic"),
        make_record("c@x.com", "Basic + Test Plans"),
    ]

    first = _engine(directory, clock=FixedClock()).reconcile(records, remote, preview=True)
    second = _engine(directory, clock=FixedClock()).reconcile(records, remote, preview=True)

    assert first == second
    assert directory.mutations == 0


def test_outcomes_stream_to_sink_in_order(directory: FakeDirectory, sink: RecordingSink) -> None:
    records = [make_record(f"user{index}@x.com", "Basic") for index in range(25)]

    summary = _engine(directory, sink=sink).reconcile(records, [], preview=True)

    assert sink.outcomes == list(summary.outcomes)
    assert sink.summaries == [summary]


class _FailingSink(RecordingSink):
    def on_outcome(self, outcome: Outcome) -> None:
        super().on_outcome(outcome)
        raise RuntimeError("report target unavailable")


def test_sink_failure_does_not_stop_the_pass(
    directory: FakeDirectory,
    caplog: pytest.LogCaptureFixture,
) -> None:
    sink = _FailingSink()
    records = [make_record(f"user{index}@x.com", "Basic") for index in range(3)]

    with caplog.at_level(logging.ERROR, logger="adosync.domain.reconciliation.engine"):
        summary = _engine(directory, sink=sink).reconcile(records, [], preview=False)

    assert summary.added == 3
    assert summary.failed == 0
    assert len(directory.created) == 3
    assert sink.outcomes == list(summary.outcomes)
    assert sink.summaries == [summary]
    assert "Reporting failed for user user0@x.com" in caplog.text


def test_cancel_returns_partial_summary(directory: FakeDirectory, sink: RecordingSink) -> None:
    records = [make_record(f"user{index}@x.com", "Basic") for index in range(5)]
    polls: list[int] = []

    def cancel() -> bool:
        polls.append(1)
        return len(polls) > 2

    summary = _engine(directory, sink=sink).reconcile(records, [], preview=False, cancel=cancel)

    assert summary.cancelled
    assert summary.total_processed == 2
    assert summary.total_desired == 5
    assert len(directory.created) == 2
    assert sink.summaries == [summary]


def test_summary_timestamps_come_from_clock(directory: FakeDirectory) -> None:
    clock = FixedClock()
    start = clock.current

    summary = _engine(directory, clock=clock).reconcile([], [], preview=True)

    assert summary.started_at == start
    assert summary.finished_at > summary.started_at


def test_duplicate_remote_users_keep_the_first() -> None:
    index = build_remote_index(
        [
            make_entity("a@x.com", Tier.BASIC, remote_id="first"),
            make_entity("A@x.com", Tier.STAKEHOLDER, remote_id="second"),
        ]
    )

    assert index["a@x.com"].remote_id == "first"
    with pytest.raises(TypeError):
        index["b@x.com"] = make_entity("b@x.com", Tier.BASIC)  # type: ignore[index]


def test_custom_mapper_table_is_used(directory: FakeDirectory) -> None:
    mapper = LicenseMapper(LicenseMapper().table.extended({"Contractor": Tier.BASIC}))
    engine = ReconciliationEngine(writer=directory, mapper=mapper, clock=FixedClock())
    remote = [make_entity("a@x.com", Tier.BASIC)]

    summary = engine.reconcile([make_record("a@x.com", "Contractor")], remote, preview=False)

    assert summary.unchanged == 1


@pytest.mark.parametrize("code", sorted(CANONICAL_LABELS))
def test_canonical_label_matches_its_own_code(directory: FakeDirectory, code: int) -> None:
    remote = [make_entity("a@x.com", code)]

    summary = _engine(directory).reconcile(
        [make_record("a@x.com", CANONICAL_LABELS[code])], remote, preview=False
    )

    assert summary.unchanged == 1
