"""
errors.py — Failure taxonomy shared by every LearnPath component.

Each error carries a short ``user_message`` suitable for a toast / CLI line.
None of them is fatal to the process: handlers.py turns any LearnPathError
into an ``{"error": ...}`` response.
"""

from __future__ import annotations


class LearnPathError(Exception):
    """Base class for all user-reportable failures."""

    user_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class AuthRequired(LearnPathError):
    """No active user session; the caller should redirect to sign-in."""
    user_message = "Please sign in to continue."


class NotFound(LearnPathError):
    """Course or milestone is absent, or not owned by the caller."""
    user_message = "Course not found."


class IncompleteSubmission(LearnPathError):
    """At least one quiz question has no selected option."""
    user_message = "Please answer all questions before submitting."


class LockedMilestone(LearnPathError):
    """Interaction attempted on a milestone that is still locked."""
    user_message = "Complete the previous milestone to unlock this one."


class GenerationFailure(LearnPathError):
    """External model call failed or produced unusable content."""
    user_message = "Failed to generate content. Please try again."


class PersistenceFailure(LearnPathError):
    """A store write failed; the enclosing transaction was rolled back."""
    user_message = "Failed to save your progress. Please try again."


class InvalidRequest(LearnPathError):
    """Request blocked by an input guardrail."""
    user_message = "The request is missing required information."


class ProgressInvariantError(LearnPathError):
    """Stored progress violates the single-frontier rule."""
    user_message = "Course progress is inconsistent."
