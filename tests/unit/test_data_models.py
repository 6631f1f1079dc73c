"""
Unit tests for data models.
"""

import pytest
from pydantic import ValidationError

from lint_reviewer.models.pr_diff import ChangedFile, DiffHunk, PullRequestEvent
from lint_reviewer.models.review import CommentCandidate, Diagnostic, ExistingComment, ReviewSubmission


class TestChangedFile:
    """Test ChangedFile model."""

    def test_valid_changed_file(self):
        changed_file = ChangedFile(filename="src/app.py", status="modified", patch="@@ -1 +1 @@\n+x", additions=1)

        assert changed_file.patch.startswith("@@")
        assert not changed_file.is_removed

    def test_removed_file(self):
        assert ChangedFile(filename="old.py", status="removed").is_removed

    def test_validation(self):
        with pytest.raises(ValueError):
            ChangedFile(filename="", status="added")

        with pytest.raises(ValueError):
            ChangedFile(filename="a.py", status="added", additions=-1)

    def test_from_api_defaults(self):
        changed_file = ChangedFile.from_api({'filename': 'a.py'})

        assert changed_file.status == 'modified'
        assert changed_file.patch is None
        assert changed_file.additions == 0


class TestDiffHunk:
    """Test DiffHunk model."""

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError):
            DiffHunk(old_start=-1, old_lines=1, new_start=1, new_lines=1)

        with pytest.raises(ValueError):
            DiffHunk(old_start=1, old_lines=1, new_start=1, new_lines=-2)


class TestReviewModels:
    """Test diagnostic and comment models."""

    def test_diagnostic_format(self):
        diagnostic = Diagnostic(line=3, rule_id="F401", message="`os` imported but unused", severity="error")

        assert diagnostic.format() == "**F401**: `os` imported but unused"

    def test_diagnostic_validation(self):
        with pytest.raises(ValueError):
            Diagnostic(line=0, rule_id="E501", message="Line too long", severity="warning")

        with pytest.raises(ValueError):
            Diagnostic(line=1, rule_id="E501", message="Line too long", severity="info")

    def test_comment_candidate_validation(self):
        with pytest.raises(ValueError):
            CommentCandidate(path="a.py", position=0, body="**E1**: x")

        with pytest.raises(ValueError):
            CommentCandidate(path="a.py", position=1, body="   ")

    def test_candidate_and_existing_share_key(self):
        candidate = CommentCandidate(path="a.py", position=4, body="**E1**: x")
        existing = ExistingComment.from_api({'path': 'a.py', 'position': 4, 'body': '**E1**: x', 'id': 99})

        assert candidate.key == existing.key
        assert candidate.to_payload() == {'path': 'a.py', 'position': 4, 'body': '**E1**: x'}

    def test_outdated_existing_comment(self):
        """Outdated comments have no position and never match a candidate."""
        existing = ExistingComment.from_api({'path': 'a.py', 'position': None, 'body': 'x'})

        assert existing.position == 0

    def test_review_submission_payload(self):
        submission = ReviewSubmission(
            event="REQUEST_CHANGES",
            body="Ruff found some issues.",
            comments=[CommentCandidate(path="a.py", position=2, body="**E1**: x")],
        )

        assert submission.to_payload() == {
            'event': 'REQUEST_CHANGES',
            'body': 'Ruff found some issues.',
            'comments': [{'path': 'a.py', 'position': 2, 'body': '**E1**: x'}],
        }

    def test_review_submission_event_validation(self):
        with pytest.raises(ValueError):
            ReviewSubmission(event="REJECT", body="x")


class TestPullRequestEvent:
    """Test webhook event validation."""

    def test_from_opened_payload(self, pull_request_payload):
        event = PullRequestEvent.from_webhook(pull_request_payload)

        assert event.action == 'opened'
        assert event.pr_number == 7
        assert (event.owner, event.repo) == ('octo', 'widgets')
        assert event.base_sha.startswith('base')
        assert event.head_sha.startswith('head')
        assert event.is_reviewable

    def test_synchronize_uses_before_and_after(self, pull_request_payload):
        payload = dict(pull_request_payload, action='synchronize', before='b' * 40, after='a' * 40)

        event = PullRequestEvent.from_webhook(payload)

        assert event.base_sha == 'b' * 40
        assert event.head_sha == 'a' * 40

    @pytest.mark.parametrize("changes", [
        {'state': 'closed'},
        {'draft': True},
        {'merged': True},
    ])
    def test_not_reviewable(self, pull_request_payload, changes):
        payload = dict(pull_request_payload)
        payload['pull_request'] = dict(payload['pull_request'], **changes)

        assert not PullRequestEvent.from_webhook(payload).is_reviewable

    def test_invalid_repository(self, pull_request_payload):
        payload = dict(pull_request_payload, repository={'full_name': 'widgets'})

        with pytest.raises(ValidationError):
            PullRequestEvent.from_webhook(payload)

    def test_missing_pull_request(self):
        with pytest.raises(ValidationError):
            PullRequestEvent.from_webhook({'action': 'opened', 'repository': {'full_name': 'octo/widgets'}})
