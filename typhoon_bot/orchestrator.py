"""
Typhoon bot orchestrator: the announcement cycle and the response watcher.
"""

import asyncio
import json
import time
from typing import Any, Callable, Dict, List, Optional

try:
    from .config_models import BotConfig
    from .factory import ProviderFactory
    from .fanout import PublishFanout
    from .interfaces import BulletinSourceInterface, MapRendererInterface, RelayFactory, SignerInterface
    from .models.data_models import (
        KIND_METADATA,
        KIND_TEXT_NOTE,
        CycloneRecord,
        Decision,
        DecisionKind,
        DeliveryResult,
        OutboundMessage,
        SignedMessage,
    )
    from .responder import QueryMatcher, ResponseWatcher
    from .update_gate import UpdateGate
    from .utils.bulletin_formatter import compose_bulletin, compose_no_cyclones, format_cyclone
    from .utils.error_handling import ComponentError, ErrorHandler, ErrorSeverity, close_all
    from .utils.logging_config import get_logger
    from .utils.scheduler import IntervalSchedule, run_periodic
    from .utils.seen_ids import SeenIdSet
except ImportError:
    from typhoon_bot.config_models import BotConfig
    from typhoon_bot.factory import ProviderFactory
    from typhoon_bot.fanout import PublishFanout
    from typhoon_bot.interfaces import BulletinSourceInterface, MapRendererInterface, RelayFactory, SignerInterface
    from typhoon_bot.models.data_models import (
        KIND_METADATA,
        KIND_TEXT_NOTE,
        CycloneRecord,
        Decision,
        DecisionKind,
        DeliveryResult,
        OutboundMessage,
        SignedMessage,
    )
    from typhoon_bot.responder import QueryMatcher, ResponseWatcher
    from typhoon_bot.update_gate import UpdateGate
    from typhoon_bot.utils.bulletin_formatter import compose_bulletin, compose_no_cyclones, format_cyclone
    from typhoon_bot.utils.error_handling import ComponentError, ErrorHandler, ErrorSeverity, close_all
    from typhoon_bot.utils.logging_config import get_logger
    from typhoon_bot.utils.scheduler import IntervalSchedule, run_periodic
    from typhoon_bot.utils.seen_ids import SeenIdSet


logger = get_logger("orchestrator")


class TyphoonBotOrchestrator:
    """
    Wires the bulletin source, update gate, signer and relays together.

    Two duty cycles share this object: the scheduled announcement cycle and
    the response watcher. They share only the `AnnouncementState` owned by
    the gate and the signer.
    """

    def __init__(
        self,
        config: BotConfig,
        signer: SignerInterface,
        relay_factory: RelayFactory,
        bulletin_source: BulletinSourceInterface,
        map_renderer: Optional[MapRendererInterface] = None,
        gate: Optional[UpdateGate] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.signer = signer
        self.relay_factory = relay_factory
        self.bulletin_source = bulletin_source
        self.map_renderer = map_renderer
        self.gate = gate or UpdateGate()
        self.fanout = PublishFanout(
            relay_factory,
            default_timeout=config.relays.publish_timeout,
            close_timeout=config.relays.close_timeout,
        )
        self.error_handler = ErrorHandler()
        self._clock = clock

        responder_cfg = config.responder
        self.watcher = ResponseWatcher(
            signer=signer,
            fanout=self.fanout,
            relay_factory=relay_factory,
            read_relays=config.relays.read_relays,
            write_relays=config.relays.write_relays,
            state=self.gate.state,
            matcher=QueryMatcher(
                required=tuple(responder_cfg.required_words),
                markers=tuple(responder_cfg.question_marks),
            ),
            publish_timeout=config.relays.publish_timeout,
            no_announcement_reply=responder_cfg.no_announcement_reply,
            seen=SeenIdSet(retention_seconds=responder_cfg.seen_retention_seconds, clock=clock),
            clock=clock,
        )

        self.is_initialized = False
        self._stop_event = asyncio.Event()
        self._cycle_count = 0
        self._phase = "idle"
        self._last_results: List[DeliveryResult] = []

    @classmethod
    def from_config(cls, config: BotConfig, providers_config: Dict[str, Any]) -> 'TyphoonBotOrchestrator':
        """Build the orchestrator with providers created by `ProviderFactory`."""
        providers = ProviderFactory.create_all_providers(providers_config)
        return cls(
            config=config,
            signer=providers['signer'],
            relay_factory=providers['relay_factory'],
            bulletin_source=providers['bulletin'],
            map_renderer=providers['map'],
        )

    async def initialize(self) -> bool:
        """Initialize providers that hold resources."""
        try:
            ok = await self.bulletin_source.initialize()
        except Exception as e:
            self.error_handler.handle_error(ComponentError(
                component="bulletin", severity=ErrorSeverity.FATAL,
                message="Initialization failed", exception=e, phase="initialize",
            ))
            return False
        if not ok:
            logger.error("Bulletin source initialization returned False")
            return False

        pubkey = await self.signer.get_public_key()
        logger.info(f"🚀 Typhoon bot initialized (pubkey {pubkey})")
        self.is_initialized = True
        return True

    def _now(self) -> int:
        return int(self._clock())

    # ------------------------------------------------------------------
    # Announcement cycle
    # ------------------------------------------------------------------

    async def _format_record(self, record: CycloneRecord) -> str:
        map_url = None
        if self.map_renderer is not None:
            body = record.current
            try:
                lat_lng = tuple(body["position"]["deg"])
                map_url = await self.map_renderer.render(
                    record.typhoon_number, body["validtime"]["JST"], lat_lng
                )
            except Exception as e:
                logger.bind(phase="compose").warning(
                    f"Map generation failed for {record.tc_id}, posting without map: {e}"
                )
        return format_cyclone(record, map_url)

    async def compose(self, decision: Decision) -> OutboundMessage:
        """Build the unsigned announcement for an announcing decision."""
        if decision.kind == DecisionKind.ANNOUNCE_EMPTY:
            content = compose_no_cyclones()
        elif decision.kind == DecisionKind.ANNOUNCE_BULLETIN:
            blocks = await asyncio.gather(
                *[self._format_record(r) for r in decision.snapshot.records]
            )
            content = compose_bulletin(blocks)
        else:
            raise ValueError(f"Nothing to compose for {decision.kind.value}")

        return OutboundMessage(kind=KIND_TEXT_NOTE, content=content, created_at=self._now(), tags=[])

    async def run_announcement_cycle(self) -> Optional[SignedMessage]:
        """
        Fetch, evaluate, sign and publish once.

        Returns:
            The published message, or None when there was nothing new

        Raises:
            BulletinFetchError: If fetching fails (state untouched)
            Exception: If composing or signing fails (state rolled back)
        """
        self._cycle_count += 1
        self._phase = "fetch"
        snapshot = await self.bulletin_source.fetch_snapshot()

        async with self.gate.guard():
            self._phase = "evaluate"
            decision = self.gate.evaluate(snapshot)
            if not decision.should_announce:
                self._phase = "idle"
                return None

            try:
                self._phase = "compose"
                unsigned = await self.compose(decision)
                self._phase = "sign"
                signed = await self.signer.sign(unsigned)
            except Exception:
                self.gate.rollback(decision)
                raise
            self.gate.record_message_id(signed.id)

        self._phase = "publish"
        log = logger.bind(event_id=signed.id, phase=self._phase)
        log.info(f"📝 Announcing {decision.kind.value}")
        log.debug(json.dumps(signed.to_dict(), ensure_ascii=False))
        self._last_results = await self.fanout.publish(
            signed, self.config.relays.write_relays, self.config.relays.publish_timeout
        )
        self._phase = "idle"
        return signed

    async def scheduled_cycle(self) -> None:
        """Announcement cycle for the scheduler; failures are recorded, never raised."""
        try:
            await self.run_announcement_cycle()
        except Exception as e:
            self.error_handler.handle_error(ComponentError(
                component="announcement",
                severity=ErrorSeverity.CYCLE,
                message="Announcement cycle aborted",
                exception=e,
                phase=self._phase,
                context={'cycle': self._cycle_count, 'last_issue_time': self.gate.state.last_issue_time or '-'},
            ))
            self._phase = "idle"

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def publish_profile(self, profile: Dict[str, Any]) -> List[DeliveryResult]:
        """Publish kind-0 account metadata to the write relays."""
        unsigned = OutboundMessage(
            kind=KIND_METADATA,
            content=json.dumps(profile, ensure_ascii=False),
            created_at=self._now(),
            tags=[],
        )
        signed = await self.signer.sign(unsigned)
        return await self.fanout.publish(
            signed, self.config.relays.write_relays, self.config.relays.publish_timeout
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Post on launch, then run the schedule and the response watcher until stopped."""
        if not self.is_initialized and not await self.initialize():
            raise RuntimeError("Typhoon bot failed to initialize")

        if self.config.schedule.post_on_launch:
            await self.scheduled_cycle()

        schedule = IntervalSchedule(
            interval_minutes=self.config.schedule.interval_minutes,
            offset_minutes=self.config.schedule.offset_minutes,
        )
        tasks = [asyncio.create_task(run_periodic(schedule, self.scheduled_cycle, self._stop_event))]
        if self.config.responder.enabled:
            tasks.append(asyncio.create_task(self.watcher.run()))

        try:
            await self._stop_event.wait()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    def stop(self) -> None:
        self._stop_event.set()

    async def cleanup(self) -> None:
        funcs = [self.bulletin_source.cleanup]
        if self.map_renderer is not None:
            funcs.append(self.map_renderer.cleanup)
        await close_all(*funcs)
        self.is_initialized = False

    def get_status(self) -> Dict[str, Any]:
        return {
            'initialized': self.is_initialized,
            'cycles': self._cycle_count,
            'phase': self._phase,
            'announcement_state': self.gate.state.to_dict(),
            'seen_events': len(self.watcher.seen),
            'last_delivery': [str(r) for r in self._last_results],
            'errors': self.error_handler.get_error_summary(),
        }
