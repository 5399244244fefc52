"""Pipeline orchestrator: interpret, mine, observe, synthesize, publish."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Optional

from specwright.ai.client import AIClient, set_debug_dir
from specwright.errors import PipelineTimeout, SynthesisError
from specwright.hosting.github_hosting import GitHubHosting
from specwright.interpreter.interpreter import IntentInterpreter
from specwright.miner.miner import KnowledgeMiner
from specwright.models.config import ExecutionConfig
from specwright.models.intent import AcceptanceCriteria, Intent
from specwright.models.observation import KnowledgeBase, Observation
from specwright.models.synthesis import GeneratedTest, PublishResult
from specwright.observer.driver import ObservationDriver
from specwright.observer.session import Session
from specwright.publisher.publisher import ArtifactPublisher
from specwright.synthesizer.synthesizer import Synthesizer

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs one synthesis from acceptance criteria to a published test."""

    def __init__(
        self,
        config: ExecutionConfig,
        hosting: Optional[GitHubHosting] = None,
        ai_client: Optional[AIClient] = None,
    ):
        self.config = config
        self.output_dir = Path(config.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        set_debug_dir(self.output_dir / "debug")

        self.ai_client = ai_client
        if self.ai_client is None and config.ai.enabled:
            try:
                self.ai_client = AIClient(
                    model=config.ai.model,
                    max_tokens=config.ai.max_tokens,
                    fallback_models=config.ai.fallback_models,
                    timeout=config.ai.timeout_seconds,
                )
            except EnvironmentError as e:
                logger.warning("AI client unavailable: %s Running in keyword mode.", e)

        self.hosting = hosting
        if self.hosting is None and config.hosting.repository:
            self.hosting = GitHubHosting(config.hosting)

        self.interpreter = IntentInterpreter(self.ai_client, config.ai.max_tokens)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, criteria: AcceptanceCriteria, publish: bool = True, dry_run: bool = False) -> dict[str, Any]:
        return asyncio.run(self.run_async(criteria, publish=publish, dry_run=dry_run))

    def interpret_only(self, criteria: AcceptanceCriteria) -> Intent:
        return self.interpreter.interpret(criteria.text, criteria.ticket_title)

    def mine_only(self) -> KnowledgeBase:
        return asyncio.run(self._miner().mine())

    async def run_async(
        self, criteria: AcceptanceCriteria, publish: bool = True, dry_run: bool = False,
    ) -> dict[str, Any]:
        """Race the pipeline against the run deadline; nothing is published after expiry."""
        run_id = f"run_{time.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"
        deadline = max(1.0, self.config.run_deadline_seconds - self.config.deadline_margin_seconds)
        session = Session(self.config.browser)
        state: dict[str, Any] = {"run_id": run_id, "status": "running"}
        start = time.time()
        logger.info("=== Starting synthesis %s (deadline %.0fs) ===", run_id, deadline)

        try:
            await asyncio.wait_for(
                self._pipeline(criteria, session, state, publish, dry_run), timeout=deadline,
            )
            state["status"] = "completed"
        except asyncio.TimeoutError:
            logger.error("Run exceeded its %.0fs deadline; nothing was published", deadline)
            state["status"] = "failed"
            state["error"] = PipelineTimeout(
                f"Run exceeded {deadline:.0f}s", {"stage": state.get("stage")},
            ).to_dict()
            state.pop("publish", None)
        except SynthesisError as e:
            logger.error("Run failed at stage '%s': %s", state.get("stage"), e)
            state["status"] = "failed"
            state["error"] = e.to_dict()
        finally:
            await session.close()

        state["duration"] = round(time.time() - start, 2)
        self._save_run(run_id, state)
        logger.info("=== Synthesis %s %s in %.1fs ===", run_id, state["status"], state["duration"])
        return state

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _miner(self) -> KnowledgeMiner:
        return KnowledgeMiner(
            self.hosting,
            self.config.hosting.page_object_dir,
            timeout=self.config.miner_timeout_seconds,
        )

    async def _pipeline(
        self,
        criteria: AcceptanceCriteria,
        session: Session,
        state: dict[str, Any],
        publish: bool,
        dry_run: bool,
    ) -> None:
        # Stage 1: Interpret (runs alongside mining)
        logger.info("--- Stage 1: Interpret + Mine ---")
        state["stage"] = "interpret"
        stage_start = time.time()
        intent, knowledge = await asyncio.gather(
            asyncio.to_thread(self.interpreter.interpret, criteria.text, criteria.ticket_title),
            self._miner().mine(),
        )
        state["intent"] = intent.model_dump()
        state["knowledge_source"] = knowledge.source
        logger.info("--- Stage 1 complete: context=%s, %d actions, %d assertions, "
                    "%d mined namespaces in %.1fs ---",
                    intent.context, len(intent.actions), len(intent.assertions),
                    len(knowledge.methods_by_namespace), time.time() - stage_start)

        # Stage 2: Observe
        logger.info("--- Stage 2: Observe ---")
        state["stage"] = "observe"
        stage_start = time.time()
        driver = ObservationDriver(self.config)
        try:
            observation: Observation = await driver.observe(session, intent)
        finally:
            state["driver_states"] = [s.value for s in driver.history]
        await driver.close(session)
        state["observation"] = {
            "url": observation.url,
            "title": observation.title,
            "stable_elements": len(observation.elements),
            "interactive_count": observation.interactive_count,
        }
        logger.info("--- Stage 2 complete: %d stable elements in %.1fs ---",
                    len(observation.elements), time.time() - stage_start)

        # Stage 3: Synthesize
        logger.info("--- Stage 3: Synthesize ---")
        state["stage"] = "synthesize"
        synthesizer = Synthesizer(knowledge)
        test: GeneratedTest = synthesizer.synthesize(intent, observation, criteria)
        state["test"] = test.model_dump(exclude={"interactions"})
        state["interactions"] = [i.model_dump() for i in test.interactions]
        self._save_test(state["run_id"], test)
        logger.info("--- Stage 3 complete: %d actions, %d assertions ---",
                    test.action_count, test.assertion_count)

        if not publish:
            return

        # Stage 4: Publish
        logger.info("--- Stage 4: Publish ---")
        state["stage"] = "publish"
        publisher = ArtifactPublisher(self.config, self.hosting)
        result: PublishResult = await publisher.publish(
            test, intent.context, criteria.ticket_id, criteria.ticket_title,
            interactions=list(test.interactions), dry_run=dry_run,
        )
        state["publish"] = result.model_dump()
        logger.info("--- Stage 4 complete: %s %s ---", result.status, result.file_path)

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def _save_test(self, run_id: str, test: GeneratedTest) -> None:
        path = self.output_dir / run_id / "generated.spec.ts"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(test.code, encoding="utf-8")
        if test.stubs:
            (path.parent / "page_object_stubs.ts").write_text(test.stubs, encoding="utf-8")
        logger.debug("Saved generated test to %s", path)

    def _save_run(self, run_id: str, state: dict[str, Any]) -> None:
        path = self.output_dir / f"{run_id}.json"
        logger.debug("Saving run report to %s", path)
        with open(path, "w") as f:
            json.dump(state, f, indent=2, default=str)
