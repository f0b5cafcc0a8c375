"""
Warden - Report Workflow Tests
==============================

Submission, assignment, verdicts and private discussion channels.
"""

import pytest
import pytest_asyncio

from conftest import BOT_USER_ID, GUILD_ID, MOD_ID, OTHER_USER_ID, OWNER_ID, STAFF_ROLE_ID, USER_ID
from warden.core.errors import HierarchyViolation, NotFoundError, StateError, ValidationError
from warden.core.models import ActionType, PrivateChannelState, ReportStatus


REPORTER_ID = OTHER_USER_ID


@pytest_asyncio.fixture
async def reports(core):
    yield core.reports
    await core.stop()


async def _submit(reports, reported=USER_ID, reason="spamming in general", evidence=None):
    return await reports.submit(GUILD_ID, REPORTER_ID, reported, reason, evidence)


class TestSubmit:

    @pytest.mark.asyncio
    async def test_submit_records_numbered_note(self, core, reports, gateway):
        report = await _submit(reports, evidence=["https://e/1"])

        assert report.status is ReportStatus.SUBMITTED
        assert report.case_id == 1
        assert report.reason == "spamming in general"

        cases = await core.query_cases(GUILD_ID, USER_ID)
        assert len(cases) == 1
        case = cases[0]
        assert case.action_type is ActionType.NOTE
        assert case.case_id == report.case_id
        assert case.actor_id == REPORTER_ID
        assert case.reason == "[REPORT] spamming in general"
        assert case.metadata == {"reported_by": REPORTER_ID, "report_type": "user_report"}

        for channel in (8005, 8006):
            logs = gateway.messages_to(channel)
            assert len(logs) == 1
            assert "[REPORT #1]" in logs[0]
            assert "https://e/1" in logs[0]

    @pytest.mark.asyncio
    async def test_reports_numbered_even_when_sanctions_are_not(self, core, reports, test_config):
        test_config.number_sanction_cases = False
        warn = await core.invoke_sanction("warn", GUILD_ID, USER_ID, MOD_ID, "first")
        report = await _submit(reports)

        assert warn.case_id is None
        assert report.case_id == 1

    @pytest.mark.asyncio
    async def test_shares_numbering_with_sanctions(self, core, reports):
        await core.invoke_sanction("warn", GUILD_ID, USER_ID, MOD_ID, "first")
        report = await _submit(reports)
        assert report.case_id == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reference", [f"<@{USER_ID}>", f"<@!{USER_ID}>", str(USER_ID)])
    async def test_mention_and_raw_id(self, reports, reference):
        report = await _submit(reports, reported=reference)
        assert report.reported_user_id == USER_ID

    @pytest.mark.asyncio
    async def test_unparseable_target(self, reports):
        with pytest.raises(ValidationError):
            await _submit(reports, reported="someone")

    @pytest.mark.asyncio
    async def test_self_report(self, reports):
        with pytest.raises(HierarchyViolation):
            await _submit(reports, reported=f"<@{REPORTER_ID}>")

    @pytest.mark.asyncio
    async def test_bot_target(self, reports):
        with pytest.raises(ValidationError):
            await _submit(reports, reported=BOT_USER_ID)

    @pytest.mark.asyncio
    async def test_non_member_target(self, reports, test_db):
        with pytest.raises(NotFoundError):
            await _submit(reports, reported=999)
        assert test_db.get_case_counter(GUILD_ID) == 0

    @pytest.mark.asyncio
    async def test_empty_reason(self, reports):
        with pytest.raises(ValidationError):
            await _submit(reports, reason="   ")

    @pytest.mark.asyncio
    async def test_evidence_list_truncated(self, reports):
        report = await _submit(reports, evidence=[f"https://e/{i}" for i in range(7)])
        assert report.evidence == [f"https://e/{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_evidence_text_is_split(self, reports):
        report = await _submit(reports, evidence="https://a, https://b https://c")
        assert report.evidence == ["https://a", "https://b", "https://c"]

    @pytest.mark.asyncio
    async def test_lookup_by_case(self, reports):
        report = await _submit(reports)
        found = await reports.get_by_case(GUILD_ID, report.case_id)
        assert found.report_id == report.report_id
        assert await reports.get(404) is None


class TestVerdict:

    @pytest.mark.asyncio
    async def test_take_then_verdict(self, reports, gateway):
        report = await _submit(reports)

        taken = await reports.take(report.report_id, MOD_ID)
        assert taken.status is ReportStatus.TAKEN
        assert taken.assigned_staff_id == MOD_ID

        resolved = await reports.give_verdict(report.report_id, MOD_ID, "User warned.")
        assert resolved.status is ReportStatus.VERDICT_GIVEN
        assert resolved.verdict_text == "User warned."

        assert "Your report #1 has been reviewed." in gateway.dms_to(REPORTER_ID)[0]
        assert "A report about you (#1)" in gateway.dms_to(USER_ID)[0]
        assert any("[VERDICT #1] by <@10>: User warned." in m for m in gateway.messages_to(8006))

    @pytest.mark.asyncio
    async def test_reassign_before_verdict(self, reports):
        report = await _submit(reports)
        await reports.take(report.report_id, MOD_ID)
        taken = await reports.take(report.report_id, OWNER_ID)
        assert taken.assigned_staff_id == OWNER_ID

    @pytest.mark.asyncio
    async def test_verdict_requires_take(self, reports, gateway):
        report = await _submit(reports)
        with pytest.raises(StateError):
            await reports.give_verdict(report.report_id, MOD_ID, "nothing to see")
        assert gateway.direct_messages == []

    @pytest.mark.asyncio
    async def test_empty_verdict(self, reports):
        report = await _submit(reports)
        await reports.take(report.report_id, MOD_ID)
        with pytest.raises(ValidationError):
            await reports.give_verdict(report.report_id, MOD_ID, "")

    @pytest.mark.asyncio
    async def test_terminal_report_rejects_further_changes(self, reports, gateway):
        report = await _submit(reports)
        await reports.take(report.report_id, MOD_ID)
        await reports.give_verdict(report.report_id, MOD_ID, "User warned.")
        sent = len(gateway.direct_messages)

        with pytest.raises(StateError):
            await reports.take(report.report_id, OWNER_ID)
        with pytest.raises(StateError):
            await reports.give_verdict(report.report_id, OWNER_ID, "Changed my mind.")

        assert len(gateway.direct_messages) == sent
        assert (await reports.get(report.report_id)).verdict_text == "User warned."

    @pytest.mark.asyncio
    async def test_unknown_report(self, reports):
        with pytest.raises(NotFoundError):
            await reports.take(404, MOD_ID)


class TestPrivateChannel:

    @pytest.mark.asyncio
    async def test_open_is_idempotent(self, reports, gateway):
        report = await _submit(reports)

        first = await reports.open_private_channel(report.report_id, MOD_ID)
        second = await reports.open_private_channel(report.report_id, OWNER_ID)

        assert first == second
        assert len(gateway.channels) == 1
        channel = gateway.channels[first]
        assert channel["name"] == "report-1"
        assert channel["parent_id"] == 8007
        assert channel["users"] == {REPORTER_ID, USER_ID, MOD_ID}
        assert channel["roles"] == {STAFF_ROLE_ID}
        assert len(gateway.messages_to(first)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_open_keeps_one_channel(self, reports, gateway, test_db, monkeypatch):
        report = await _submit(reports)
        create = gateway.create_restricted_channel

        async def racing_create(*args, **kwargs):
            # Another staff member attaches their channel first
            winner = await create(*args, **kwargs)
            test_db.attach_report_channel(report.report_id, winner)
            return await create(*args, **kwargs)

        monkeypatch.setattr(gateway, "create_restricted_channel", racing_create)
        ref = await reports.open_private_channel(report.report_id, MOD_ID)

        assert ref == 5001
        assert gateway.deleted_channels == [5002]
        assert list(gateway.channels) == [5001]
        assert (await reports.get(report.report_id)).private_channel_ref == 5001

    @pytest.mark.asyncio
    async def test_close_reclaims_channel(self, core, reports, gateway, clock):
        report = await _submit(reports)
        ref = await reports.open_private_channel(report.report_id, MOD_ID)

        closing = await reports.close_private_channel(report.report_id, MOD_ID)
        assert closing.private_channel_state is PrivateChannelState.CLOSING
        assert any("deleted in 2 seconds" in m for m in gateway.messages_to(ref))

        with pytest.raises(StateError):
            await reports.open_private_channel(report.report_id, MOD_ID)

        task = core.reclaimer.get(f"report:{report.report_id}")
        await clock.advance(2)
        await task

        assert gateway.deleted_channels == [ref]
        closed = await reports.get(report.report_id)
        assert closed.private_channel_state is PrivateChannelState.CLOSED
        assert closed.private_channel_ref is None

        reopened = await reports.open_private_channel(report.report_id, MOD_ID)
        assert reopened != ref

    @pytest.mark.asyncio
    async def test_close_without_open_channel(self, reports):
        report = await _submit(reports)
        with pytest.raises(StateError):
            await reports.close_private_channel(report.report_id, MOD_ID)

    @pytest.mark.asyncio
    async def test_close_twice(self, reports):
        report = await _submit(reports)
        await reports.open_private_channel(report.report_id, MOD_ID)
        await reports.close_private_channel(report.report_id, MOD_ID)
        with pytest.raises(StateError):
            await reports.close_private_channel(report.report_id, MOD_ID)

    @pytest.mark.asyncio
    async def test_no_open_after_verdict(self, reports, gateway):
        report = await _submit(reports)
        await reports.take(report.report_id, MOD_ID)
        await reports.give_verdict(report.report_id, MOD_ID, "Resolved.")

        with pytest.raises(StateError):
            await reports.open_private_channel(report.report_id, MOD_ID)
        assert gateway.channels == {}

    @pytest.mark.asyncio
    async def test_close_allowed_after_verdict(self, reports):
        report = await _submit(reports)
        await reports.open_private_channel(report.report_id, MOD_ID)
        await reports.take(report.report_id, MOD_ID)
        await reports.give_verdict(report.report_id, MOD_ID, "Resolved.")

        closing = await reports.close_private_channel(report.report_id, MOD_ID)
        assert closing.private_channel_state is PrivateChannelState.CLOSING

    @pytest.mark.asyncio
    async def test_recover_finishes_interrupted_close(self, core, reports, gateway, test_db, test_config, clock):
        from warden.services.container import ModerationCore

        report = await _submit(reports)
        ref = await reports.open_private_channel(report.report_id, MOD_ID)
        await reports.close_private_channel(report.report_id, MOD_ID)
        await core.stop()

        restarted = ModerationCore(test_config, gateway, test_db, clock)
        assert await restarted.reports.recover() == 1
        await restarted.reclaimer.get(f"report:{report.report_id}")

        assert gateway.deleted_channels == [ref]
        assert (await restarted.reports.get(report.report_id)).private_channel_state is PrivateChannelState.CLOSED
        await restarted.stop()
