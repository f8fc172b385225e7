"""
Tests for the dict-in / dict-out request surface (handlers.py).
"""
import json

import pytest

from factories import make_mock_client, make_roadmap_payload, make_user

from learnpath import database, handlers
from learnpath.config import AzureOpenAIConfig
from learnpath.errors import AuthRequired, GenerationFailure
from learnpath.llm_client import LLMClient
from learnpath.models import MilestoneStatus
from learnpath.roadmap_agent import RoadmapGeneratorAgent
from learnpath.suggestion_agent import SuggestionAgent


def _roadmap_payload(ctx, **overrides):
    payload = {
        "topic": "React Development", "duration": "1 week", "goal": "Project",
        "skillLevel": "Beginner", "preference": "Videos", "userId": ctx.user_id,
    }
    payload.update(overrides)
    return payload


class TestSignIn:
    def test_creates_then_resolves(self, db):
        first = handlers.sign_in("Ada", "4321")
        assert handlers.sign_in("Ada", "4321") == first

    def test_wrong_pin(self, db):
        handlers.sign_in("Ada", "4321")
        with pytest.raises(AuthRequired):
            handlers.sign_in("Ada", "0000")

    def test_blank_name(self, db):
        with pytest.raises(AuthRequired):
            handlers.sign_in("  ")


class TestGenerateRoadmap:
    def test_mock_success(self, ctx):
        response = handlers.generate_roadmap(_roadmap_payload(ctx))
        assert response["success"] is True
        assert response["course"]["roadmapSource"] == "mock"
        assert len(response["milestones"]) == 3
        assert response["milestones"][0]["quiz"][0]["correct"] == 0
        json.dumps(response)   # serialisable as-is

    def test_live_success(self, ctx):
        agent = RoadmapGeneratorAgent(client=make_mock_client(json.dumps(make_roadmap_payload(3))))
        response = handlers.generate_roadmap(_roadmap_payload(ctx), agent=agent)
        assert response["course"]["name"] == "React Fundamentals"
        assert [m["orderIndex"] for m in response["milestones"]] == [1, 2, 3]

    def test_unknown_user(self, db):
        response = handlers.generate_roadmap({"topic": "Go", "userId": 999})
        assert response == {"error": "Please sign in to continue."}

    def test_missing_user(self, db):
        assert "error" in handlers.generate_roadmap({"topic": "Go"})

    def test_empty_topic(self, ctx):
        response = handlers.generate_roadmap(_roadmap_payload(ctx, topic=""))
        assert response == {"error": "Tell us what you want to learn."}


class TestSubmitQuiz:
    def test_fail_then_pass(self, ctx, course3):
        course, ms = course3
        base = {"userId": ctx.user_id, "courseId": course.id, "milestoneId": ms[0].id}
        failed = handlers.submit_quiz({**base, "answers": [0, 1, 1]})
        assert failed == {
            "success": True, "passed": False, "score": 67, "courseCompleted": False,
            "message": "You need 100% to pass. Try again!",
        }
        passed = handlers.submit_quiz({**base, "answers": [0, 1, 2]})
        assert passed["passed"] is True and passed["score"] == 100

    def test_incomplete(self, ctx, course3):
        course, ms = course3
        response = handlers.submit_quiz({
            "userId": ctx.user_id, "courseId": course.id, "milestoneId": ms[0].id,
            "answers": [0, None, 2],
        })
        assert response == {"error": "Please answer all questions before submitting."}

    def test_locked(self, ctx, course3):
        course, ms = course3
        response = handlers.submit_quiz({
            "userId": ctx.user_id, "courseId": course.id, "milestoneId": ms[2].id,
            "answers": [0, 1, 2],
        })
        assert response == {"error": "Complete the previous milestone to unlock this one."}

    def test_completion_returns_certificate_id(self, ctx, course3):
        course, ms = course3
        for m in ms:
            response = handlers.submit_quiz({
                "userId": ctx.user_id, "courseId": course.id, "milestoneId": m.id,
                "answers": [0, 1, 2],
            })
        assert response["courseCompleted"] is True
        assert response["certificateId"].startswith("CERT-")

    def test_not_owner(self, ctx, course3):
        other = make_user("Other")
        course, ms = course3
        response = handlers.submit_quiz({
            "userId": other.user_id, "courseId": course.id, "milestoneId": ms[0].id,
            "answers": [0, 1, 2],
        })
        assert response == {"error": "Course not found."}

    def test_bad_types(self, ctx):
        response = handlers.submit_quiz({"userId": ctx.user_id, "courseId": "abc",
                                         "milestoneId": 1, "answers": [0]})
        assert "error" in response
        assert "error" in handlers.submit_quiz({"userId": ctx.user_id, "courseId": 1,
                                                "milestoneId": 1, "answers": "0,1"})

    def test_fractional_answer_rejected(self, ctx, course3):
        course, ms = course3
        base = {"userId": ctx.user_id, "courseId": course.id, "milestoneId": ms[0].id}
        response = handlers.submit_quiz({**base, "answers": [0, 1.9, 2]})
        assert response == {"error": "'answers' must be an integer."}
        assert "error" in handlers.submit_quiz({**base, "answers": [0, "1.9", 2]})
        record = next(p for p in database.get_progress(ctx.user_id, course.id)
                      if p.milestone_id == ms[0].id)
        assert record.status == MilestoneStatus.ACTIVE

    def test_integral_float_answer_accepted(self, ctx, course3):
        course, ms = course3
        response = handlers.submit_quiz({
            "userId": ctx.user_id, "courseId": course.id, "milestoneId": ms[0].id,
            "answers": [0, 1.0, 2],
        })
        assert response["passed"] is True


class TestSuggestNextCourse:
    def test_mock_fallback(self):
        response = handlers.suggest_next_course({"completedCourse": "SQL", "userPreferences": {}})
        assert response["success"] is True
        assert set(response["suggestions"]) == {"currentOpportunities", "nextSteps", "careerPaths"}

    def test_call_failure_reported(self):
        agent = SuggestionAgent(client=make_mock_client(side_effect=GenerationFailure()))
        response = handlers.suggest_next_course({"completedCourse": "SQL"}, agent=agent)
        assert response == {"error": "Failed to generate content. Please try again."}

    def test_missing_course(self):
        assert "error" in handlers.suggest_next_course({})

    def test_unconfigured_client_reported(self):
        placeholder = AzureOpenAIConfig(
            endpoint="<placeholder>", api_key="", deployment="gpt-4o",
            api_version="2024-12-01-preview", timeout_s=5.0,
        )
        agent = SuggestionAgent(client=LLMClient(placeholder))
        response = handlers.suggest_next_course({"completedCourse": "SQL"}, agent=agent)
        assert response == {"error": "Failed to generate content. Please try again."}
