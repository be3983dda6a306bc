"""
Tests for the announcement cycle in TyphoonBotOrchestrator.
"""

import asyncio
import json

import pytest

from conftest import FakeSigner, RelayPool, make_snapshot
from typhoon_bot.interfaces import (
    BulletinFetchError,
    BulletinSourceInterface,
    MapGenerationError,
    MapRendererInterface,
)
from typhoon_bot.models import DeliveryStatus, Snapshot
from typhoon_bot.orchestrator import TyphoonBotOrchestrator
from typhoon_bot.utils.bulletin_formatter import FOOTER_TEXT, NO_CYCLONES_TEXT


NOW = 1722474000.0


class FakeBulletinSource(BulletinSourceInterface):
    """Returns queued snapshots (or raises queued exceptions) in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.cleaned_up = False

    async def initialize(self) -> bool:
        return True

    async def fetch_snapshot(self) -> Snapshot:
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def cleanup(self):
        self.cleaned_up = True


class FakeMapRenderer(MapRendererInterface):

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def render(self, typhoon_number, validtime, lat_lng):
        self.calls.append((typhoon_number, validtime, lat_lng))
        if self.fail:
            raise MapGenerationError("genmap returned 500")
        return f"https://maps.example/{typhoon_number}.webp"

    async def cleanup(self):
        pass


def make_bot(bot_config, source, signer=None, pool=None, map_renderer=None):
    return TyphoonBotOrchestrator(
        config=bot_config,
        signer=signer or FakeSigner(),
        relay_factory=pool or RelayPool(),
        bulletin_source=source,
        map_renderer=map_renderer,
        clock=lambda: NOW,
    )


class TestAnnouncementCycle:

    @pytest.mark.asyncio
    async def test_new_bulletin_is_published_to_all_write_relays(self, bot_config):
        pool = RelayPool()
        bot = make_bot(bot_config, FakeBulletinSource(make_snapshot("2024-08-29T09:00:00+09:00")), pool=pool)

        signed = await bot.run_announcement_cycle()

        assert signed is not None
        assert signed.kind == 1
        assert signed.created_at == int(NOW)
        assert signed.content.endswith(FOOTER_TEXT)
        assert "台風01号" in signed.content
        assert bot.gate.state.last_message_id == signed.id
        assert bot.gate.state.last_issue_time == "2024-08-29T09:00:00+09:00"
        assert sorted(r.url for r in pool.opened) == bot_config.relays.write_relays
        assert all(r.status == DeliveryStatus.OK for r in bot._last_results)

    @pytest.mark.asyncio
    async def test_unchanged_snapshot_is_not_republished(self, bot_config):
        snapshot = make_snapshot("2024-08-29T09:00:00+09:00")
        signer = FakeSigner()
        bot = make_bot(bot_config, FakeBulletinSource(snapshot, snapshot), signer=signer)

        assert await bot.run_announcement_cycle() is not None
        assert await bot.run_announcement_cycle() is None
        assert len(signer.signed) == 1

    @pytest.mark.asyncio
    async def test_storm_season_scenario(self, bot_config):
        source = FakeBulletinSource(
            Snapshot.empty(),
            make_snapshot("2024-08-29T09:00:00+09:00"),
            make_snapshot("2024-08-29T09:00:00+09:00"),
            make_snapshot("2024-08-29T12:00:00+09:00"),
            Snapshot.empty(),
            Snapshot.empty(),
        )
        bot = make_bot(bot_config, source)

        contents = []
        for _ in range(6):
            signed = await bot.run_announcement_cycle()
            contents.append(signed.content if signed else None)

        assert contents[0].startswith(NO_CYCLONES_TEXT)
        assert "12時00分" not in contents[1]
        assert contents[2] is None
        assert "12時00分" in contents[3]
        assert contents[4].startswith(NO_CYCLONES_TEXT)
        assert contents[5] is None

    @pytest.mark.asyncio
    async def test_fetch_failure_leaves_state_untouched(self, bot_config):
        bot = make_bot(bot_config, FakeBulletinSource(BulletinFetchError("503")))
        before = bot.gate.state.to_dict()

        with pytest.raises(BulletinFetchError):
            await bot.run_announcement_cycle()

        assert bot.gate.state.to_dict() == before

    @pytest.mark.asyncio
    async def test_signing_failure_rolls_back_and_next_cycle_retries(self, bot_config):
        snapshot = make_snapshot("2024-08-29T09:00:00+09:00")
        signer = FakeSigner(fail=True)
        bot = make_bot(bot_config, FakeBulletinSource(snapshot, snapshot), signer=signer)

        with pytest.raises(RuntimeError):
            await bot.run_announcement_cycle()
        assert bot.gate.state.last_issue_time == ""
        assert bot.gate.state.last_message_id == ""

        signer.fail = False
        assert await bot.run_announcement_cycle() is not None

    @pytest.mark.asyncio
    async def test_total_publish_failure_still_commits(self, bot_config):
        snapshot = make_snapshot("2024-08-29T09:00:00+09:00")
        pool = RelayPool(**{url: {"behavior": "error"} for url in bot_config.relays.write_relays})
        bot = make_bot(bot_config, FakeBulletinSource(snapshot, snapshot), pool=pool)

        signed = await bot.run_announcement_cycle()

        assert all(r.status == DeliveryStatus.REJECTED for r in bot._last_results)
        assert bot.gate.state.last_message_id == signed.id
        assert await bot.run_announcement_cycle() is None

    @pytest.mark.asyncio
    async def test_map_url_is_appended(self, bot_config):
        renderer = FakeMapRenderer()
        bot = make_bot(bot_config, FakeBulletinSource(make_snapshot("2024-08-29T09:00:00+09:00")),
                       map_renderer=renderer)

        signed = await bot.run_announcement_cycle()

        assert "https://maps.example/2401.webp" in signed.content
        assert renderer.calls == [("2401", "2024-08-29T09:00:00+09:00", (29.9, 129.9))]

    @pytest.mark.asyncio
    async def test_map_failure_posts_without_map(self, bot_config):
        bot = make_bot(bot_config, FakeBulletinSource(make_snapshot("2024-08-29T09:00:00+09:00")),
                       map_renderer=FakeMapRenderer(fail=True))

        signed = await bot.run_announcement_cycle()

        assert signed is not None
        assert "maps.example" not in signed.content

    @pytest.mark.asyncio
    async def test_overlapping_cycles_announce_once(self, bot_config):
        snapshot = make_snapshot("2024-08-29T09:00:00+09:00")
        signer = FakeSigner()
        bot = make_bot(bot_config, FakeBulletinSource(snapshot, snapshot), signer=signer)

        results = await asyncio.gather(bot.run_announcement_cycle(), bot.run_announcement_cycle())

        assert sum(r is not None for r in results) == 1
        assert len(signer.signed) == 1


class TestScheduledCycle:

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self, bot_config):
        bot = make_bot(bot_config, FakeBulletinSource(BulletinFetchError("timeout")))

        await bot.scheduled_cycle()

        summary = bot.error_handler.get_error_summary()
        assert summary['total_errors'] == 1
        assert summary['by_component'] == {'announcement': 1}
        assert summary['last_phase'] == "fetch"
        assert "BulletinFetchError" in summary['last_error']
        assert "cycle=1" in summary['last_error']
        assert bot.get_status()['cycles'] == 1
        assert bot.get_status()['phase'] == "idle"

    @pytest.mark.asyncio
    async def test_signing_failure_is_recorded_with_its_phase(self, bot_config):
        bot = make_bot(bot_config, FakeBulletinSource(make_snapshot("2024-08-29T09:00:00+09:00")),
                       signer=FakeSigner(fail=True))

        await bot.scheduled_cycle()

        assert bot.error_handler.get_error_summary()['last_phase'] == "sign"


class TestProfileAndLifecycle:

    @pytest.mark.asyncio
    async def test_publish_profile_sends_metadata(self, bot_config):
        pool = RelayPool()
        signer = FakeSigner()
        bot = make_bot(bot_config, FakeBulletinSource(), signer=signer, pool=pool)

        results = await bot.publish_profile({"name": "typhoon", "display_name": "台風情報"})

        assert len(results) == 3
        assert signer.signed[0].kind == 0
        assert json.loads(signer.signed[0].content)["display_name"] == "台風情報"

    @pytest.mark.asyncio
    async def test_run_posts_on_launch_and_stops(self, bot_config):
        bot_config.schedule.post_on_launch = True
        bot_config.responder.enabled = False
        signer = FakeSigner()
        bot = make_bot(bot_config, FakeBulletinSource(Snapshot.empty()), signer=signer)

        task = asyncio.create_task(bot.run())
        await asyncio.sleep(0.05)
        bot.stop()
        await asyncio.wait_for(task, timeout=1)

        assert len(signer.signed) == 1
        assert bot.is_initialized

    @pytest.mark.asyncio
    async def test_cleanup_releases_source(self, bot_config):
        source = FakeBulletinSource()
        bot = make_bot(bot_config, source)

        await bot.cleanup()

        assert source.cleaned_up

    @pytest.mark.asyncio
    async def test_cleanup_continues_past_a_failing_closer(self, bot_config):
        source = FakeBulletinSource()
        renderer = FakeMapRenderer()

        async def broken_cleanup():
            raise RuntimeError("session already gone")

        renderer.cleanup = broken_cleanup
        bot = make_bot(bot_config, source, map_renderer=renderer)

        await bot.cleanup()

        assert source.cleaned_up
        assert not bot.is_initialized
