"""
Tests for RoadmapGeneratorAgent (roadmap_agent.py).
The LLM is replaced by a MagicMock client; no network calls are made.
"""
import json

import pytest

from factories import fenced, make_mock_client, make_request, make_roadmap_payload

from learnpath import database
from learnpath.errors import AuthRequired, GenerationFailure, InvalidRequest
from learnpath.models import MilestoneStatus, RoadmapSource
from learnpath.progression import build_view, check_frontier
from learnpath.roadmap_agent import RoadmapGeneratorAgent, build_user_message, synthetic_roadmap


class TestPrompt:
    def test_count_in_prompt(self):
        assert "Exactly 5 milestones" in build_user_message(make_request(duration="4 weeks"))

    def test_personalisation_rules(self):
        msg = build_user_message(make_request(preference="Notes", skill_level="Advanced", goal="Exam"))
        assert "2 websites/documentation links" in msg
        assert "challenging quiz questions" in msg
        assert "practice-style quiz questions" in msg

    def test_unknown_values_add_no_rules(self):
        msg = build_user_message(make_request(preference="?", skill_level="Intermediate", goal="Other"))
        assert "YouTube" not in msg
        assert "Real URLs only" in msg


class TestSyntheticRoadmap:
    @pytest.mark.parametrize("duration,count", [("1 week", 3), ("2 weeks", 4), ("4 weeks", 5), ("soon", 4)])
    def test_count_follows_policy(self, duration, count):
        assert len(synthetic_roadmap("Rust", duration).milestones) == count

    def test_placeholder_content(self):
        doc = synthetic_roadmap("Rust", "1 week")
        first = doc.milestones[0]
        assert first.title == "Rust - Milestone 1"
        assert [q.correct_index for q in first.quiz] == [0, 1, 2]
        assert doc.course_name == "Rust Learning Path"


class TestGenerate:
    def test_mock_mode_uses_synthetic(self):
        agent = RoadmapGeneratorAgent()
        assert not agent.live
        generated = agent.generate(make_request(duration="1 week"))
        assert generated.source == RoadmapSource.MOCK
        assert len(generated.roadmap.milestones) == 3
        assert generated.trace.degraded

    def test_direct_json(self):
        client = make_mock_client(json.dumps(make_roadmap_payload(4)))
        generated = RoadmapGeneratorAgent(client=client).generate(make_request())
        assert generated.source == RoadmapSource.LLM
        assert generated.parse_strategy == "direct"
        assert not generated.trace.degraded
        client.complete.assert_called_once()

    def test_fenced_json_recovered(self):
        client = make_mock_client(fenced(make_roadmap_payload(4)))
        generated = RoadmapGeneratorAgent(client=client).generate(make_request())
        assert generated.source == RoadmapSource.LLM
        assert generated.parse_strategy == "strip_fences"
        assert generated.roadmap.course_name == "React Fundamentals"

    def test_garbage_falls_back_to_synthetic(self):
        client = make_mock_client("Sorry, I can't do that.")
        generated = RoadmapGeneratorAgent(client=client).generate(make_request(topic="Go"))
        assert generated.source == RoadmapSource.SYNTHETIC
        assert generated.roadmap.milestones[0].title == "Go - Milestone 1"
        assert generated.trace.degraded

    def test_schema_invalid_falls_back(self):
        client = make_mock_client(json.dumps({"courseName": "X", "milestones": []}))
        generated = RoadmapGeneratorAgent(client=client).generate(make_request())
        assert generated.source == RoadmapSource.SYNTHETIC

    def test_blank_course_name_falls_back(self):
        client = make_mock_client(json.dumps(make_roadmap_payload(3, course_name="   ")))
        generated = RoadmapGeneratorAgent(client=client).generate(make_request(topic="Go"))
        assert generated.source == RoadmapSource.SYNTHETIC
        assert generated.roadmap.course_name.strip()

    def test_malformed_resource_keeps_model_roadmap(self):
        payload = make_roadmap_payload(3)
        del payload["milestones"][0]["resources"]["youtube"][0]["url"]
        payload["milestones"][1]["resources"]["additional"][0]["type"] = None
        client = make_mock_client(json.dumps(payload))
        generated = RoadmapGeneratorAgent(client=client).generate(make_request())
        assert generated.source == RoadmapSource.LLM
        milestones = generated.roadmap.milestones
        assert milestones[0].resources.youtube == []
        assert milestones[1].resources.additional[0].type == "article"
        assert milestones[2].resources.youtube[0].channel == "Fireship"

    def test_call_failure_propagates(self):
        client = make_mock_client(side_effect=GenerationFailure())
        with pytest.raises(GenerationFailure):
            RoadmapGeneratorAgent(client=client).generate(make_request())

    def test_blocked_request(self):
        client = make_mock_client("{}")
        with pytest.raises(InvalidRequest):
            RoadmapGeneratorAgent(client=client).generate(make_request(topic=""))
        client.complete.assert_not_called()


class TestRun:
    def test_persists_course_with_single_frontier(self, ctx):
        client = make_mock_client(json.dumps(make_roadmap_payload(4)))
        course, milestones, generated = RoadmapGeneratorAgent(client=client).run(ctx, make_request())
        assert course.name == "React Fundamentals"
        assert course.duration == "2 weeks"
        assert course.roadmap_source == RoadmapSource.LLM
        assert len(milestones) == 4

        view = build_view(milestones, database.get_progress(ctx.user_id, course.id))
        check_frontier(view)
        assert view.frontier.milestone.order_index == 1
        assert [m.status for m in view.milestones][1:] == [MilestoneStatus.LOCKED] * 3
        assert database.get_course_trace(course.id)["run_id"] == generated.trace.run_id

    def test_model_order_respected(self, ctx):
        client = make_mock_client(json.dumps(make_roadmap_payload(orders=[3, 1, 2])))
        _, milestones, _ = RoadmapGeneratorAgent(client=client).run(ctx, make_request())
        assert [m.title for m in milestones] == ["Step 1", "Step 2", "Step 3"]

    def test_failure_persists_nothing(self, ctx):
        client = make_mock_client(side_effect=GenerationFailure())
        with pytest.raises(GenerationFailure):
            RoadmapGeneratorAgent(client=client).run(ctx, make_request())
        assert database.list_courses(ctx.user_id) == []

    def test_synthetic_course_flagged(self, ctx):
        client = make_mock_client("not json")
        course, _, _ = RoadmapGeneratorAgent(client=client).run(ctx, make_request())
        assert course.roadmap_source == RoadmapSource.SYNTHETIC

    def test_requires_user(self, db):
        with pytest.raises(AuthRequired):
            RoadmapGeneratorAgent().run(None, make_request())
