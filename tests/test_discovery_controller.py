import json
import os
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("ANALYTICS_ENABLED", "0")

from app.schemas.catalog import SimulationEntry  # noqa: E402
from app.schemas.discover import QA, AskAction, RecommendAction  # noqa: E402
from app.services.discovery_service import (  # noqa: E402
    DiscoveryController,
    InvalidInput,
    LLMNextActionGenerator,
    MalformedGenerationOutput,
    parse_action,
    resolve_action,
)


class StubGenerator:
    def __init__(self, *actions):
        self._actions = list(actions)
        self.calls = []

    async def next_action(self, transcript):
        self.calls.append(tuple(transcript))
        if len(self._actions) > 1:
            return self._actions.pop(0)
        return self._actions[0]


class FakeClient:
    model = "fake-model"

    def __init__(self, response="", error=None):
        self._response = response
        self._error = error
        self.messages = []

    async def complete_json(self, messages):
        self.messages.append(list(messages))
        if self._error is not None:
            raise self._error
        return self._response


def _transcript(turns: int) -> list[QA]:
    return [QA(q=f"Question {idx}?", a=f"Answer {idx}") for idx in range(turns)]


ASK = AskAction(action="ask", question="What do you enjoy doing most?")
RECOMMEND = RecommendAction(
    action="recommend",
    status="supported",
    role_title="Data & Analytics",
    rationale="likes numbers; enjoys experiments",
    confidence=0.8,
)


class ParseActionTests(unittest.TestCase):
    def test_parses_ask(self):
        action = parse_action('{"action": "ask", "question": "Do you like people or data?"}')
        self.assertIsInstance(action, AskAction)
        self.assertEqual(action.question, "Do you like people or data?")

    def test_parses_recommend(self):
        action = parse_action(
            json.dumps(
                {
                    "action": "recommend",
                    "status": "unsupported",
                    "rationale": "wants to be a chef",
                    "message_if_unsupported": "1) Cook 2) Stage 3) Learn",
                }
            )
        )
        self.assertIsInstance(action, RecommendAction)
        self.assertEqual(action.status, "unsupported")

    def test_shape_mismatch_is_malformed(self):
        with self.assertRaises(MalformedGenerationOutput):
            parse_action('{"foo": "bar"}')

    def test_non_json_is_malformed(self):
        with self.assertRaises(MalformedGenerationOutput):
            parse_action("Sure! Here is your next question.")

    def test_non_object_is_malformed(self):
        with self.assertRaises(MalformedGenerationOutput):
            parse_action('["ask"]')

    def test_confidence_out_of_range_is_malformed(self):
        with self.assertRaises(MalformedGenerationOutput):
            parse_action({"action": "recommend", "status": "supported", "role_title": "Design", "confidence": 3})


class DiscoveryControllerTests(unittest.IsolatedAsyncioTestCase):
    async def test_forwards_ask_below_ceiling(self):
        generator = StubGenerator(ASK)
        controller = DiscoveryController(generator)
        action = await controller.decide(_transcript(2))
        self.assertEqual(action, ASK)
        self.assertEqual(len(generator.calls[0]), 2)

    async def test_empty_transcript_is_allowed(self):
        controller = DiscoveryController(StubGenerator(ASK))
        self.assertIsInstance(await controller.decide([]), AskAction)

    async def test_ask_after_eight_turns_is_rejected(self):
        controller = DiscoveryController(StubGenerator(ASK))
        with self.assertRaises(MalformedGenerationOutput) as ctx:
            await controller.decide(_transcript(8))
        self.assertEqual(ctx.exception.code, "question_limit_exceeded")

    async def test_eighth_turn_forwards_recommend(self):
        controller = DiscoveryController(StubGenerator(RECOMMEND))
        action = await controller.decide(_transcript(8))
        self.assertIsInstance(action, RecommendAction)

    async def test_full_session_never_asks_past_ceiling(self):
        generator = StubGenerator(*([ASK] * 8), RECOMMEND)
        controller = DiscoveryController(generator)
        transcript: list[QA] = []
        while True:
            action = await controller.decide(transcript)
            if isinstance(action, RecommendAction):
                break
            transcript.append(QA(q=action.question, a="I like spreadsheets"))
        self.assertEqual(len(transcript), 8)
        self.assertEqual(action.role_title, "Data & Analytics")

    async def test_too_many_turns_is_invalid_input(self):
        generator = StubGenerator(RECOMMEND)
        controller = DiscoveryController(generator)
        with self.assertRaises(InvalidInput):
            await controller.decide(_transcript(9))
        self.assertEqual(generator.calls, [])

    async def test_blank_answer_is_invalid_input_before_generation(self):
        generator = StubGenerator(ASK)
        controller = DiscoveryController(generator)
        with self.assertRaises(InvalidInput):
            await controller.decide([QA(q="What do you like?", a="   ")])
        self.assertEqual(generator.calls, [])

    async def test_supported_role_is_normalized_to_configured_spelling(self):
        generator = StubGenerator(
            RecommendAction(action="recommend", status="supported", role_title="data & analytics", rationale="x")
        )
        action = await DiscoveryController(generator).decide(_transcript(3))
        self.assertEqual(action.role_title, "Data & Analytics")

    async def test_supported_role_outside_set_is_malformed(self):
        generator = StubGenerator(
            RecommendAction(action="recommend", status="supported", role_title="Astronaut", rationale="x")
        )
        with self.assertRaises(MalformedGenerationOutput) as ctx:
            await DiscoveryController(generator).decide(_transcript(3))
        self.assertEqual(ctx.exception.code, "unknown_role")

    async def test_supported_without_role_is_malformed(self):
        generator = StubGenerator(RecommendAction(action="recommend", status="supported", rationale="x"))
        with self.assertRaises(MalformedGenerationOutput):
            await DiscoveryController(generator).decide(_transcript(3))

    async def test_unsupported_always_carries_guidance(self):
        generator = StubGenerator(RecommendAction(action="recommend", status="unsupported", rationale="chef"))
        action = await DiscoveryController(generator).decide(_transcript(4))
        self.assertTrue(action.message_if_unsupported)


class LLMNextActionGeneratorTests(unittest.IsolatedAsyncioTestCase):
    async def test_sends_transcript_and_role_set(self):
        client = FakeClient('{"action": "ask", "question": "Solo or team work?"}')
        generator = LLMNextActionGenerator(client)
        action = await generator.next_action(_transcript(2))

        self.assertEqual(action.question, "Solo or team work?")
        system, user = client.messages[0]
        self.assertEqual(system.role, "system")
        self.assertIn("Supply Chain / Logistics", system.content)
        self.assertIn("at most 8 questions", system.content)
        payload = json.loads(user.content)
        self.assertEqual(payload["answers"][1], {"index": 1, "question": "Question 1?", "answer": "Answer 1"})
        self.assertEqual(payload["questions_remaining"], 6)

    async def test_malformed_payload_raises(self):
        generator = LLMNextActionGenerator(FakeClient('{"foo": "bar"}'))
        with self.assertRaises(MalformedGenerationOutput):
            await generator.next_action([])

    async def test_provider_failure_raises_malformed(self):
        generator = LLMNextActionGenerator(FakeClient(error=TimeoutError("slow")))
        with self.assertRaises(MalformedGenerationOutput) as ctx:
            await generator.next_action([])
        self.assertEqual(ctx.exception.code, "llm_exception")

    async def test_controller_surfaces_malformed_output(self):
        controller = DiscoveryController(LLMNextActionGenerator(FakeClient('{"foo": "bar"}')))
        with self.assertRaises(MalformedGenerationOutput):
            await controller.decide(_transcript(1))


class ResolveActionTests(unittest.TestCase):
    def setUp(self):
        self.catalog = [
            SimulationEntry(slug="data-analytics-101", title="Data & Analytics"),
            SimulationEntry(slug="project-management-101", title="Project Management"),
        ]

    def test_question(self):
        result = resolve_action(ASK, lambda: self.catalog)
        self.assertEqual(result.model_dump(), {"type": "question", "question": ASK.question})

    def test_supported_with_match(self):
        result = resolve_action(RECOMMEND, lambda: self.catalog)
        self.assertEqual(result.status, "supported")
        self.assertEqual(result.slug, "data-analytics-101")
        self.assertEqual(result.message, RECOMMEND.rationale)

    def test_supported_without_match_is_not_found(self):
        action = RecommendAction(action="recommend", status="supported", role_title="Legal", rationale="")
        result = resolve_action(action, lambda: self.catalog)
        self.assertEqual(result.status, "not_found")
        self.assertEqual(result.role, "Legal")
        self.assertIn("Legal", result.message)

    def test_unsupported_does_not_touch_catalog(self):
        def _fail():
            raise AssertionError("catalog should not be read")

        action = RecommendAction(
            action="recommend",
            status="unsupported",
            rationale="",
            message_if_unsupported="Try a cooking class.",
        )
        result = resolve_action(action, _fail)
        self.assertEqual(result.model_dump(), {"type": "result", "status": "unsupported", "message": "Try a cooking class."})


if __name__ == "__main__":
    unittest.main()
