"""Unit tests for task and audio models."""

import base64

import pytest

from voicetask.models.audio import AudioClip, EnergyVerdict
from voicetask.models.task import ParsedTaskResult, Task, TaskPriority, TaskStatus


@pytest.mark.unit
class TestParsedTaskResult:

    def test_accepts_wire_names(self):
        result = ParsedTaskResult.model_validate({
            "title": "Pay rent",
            "dueDate": "2026-11-01",
            "originalTranscript": "pay rent on the first",
        })

        assert result.due_date == "2026-11-01"
        assert result.original_transcript == "pay rent on the first"

    def test_accepts_field_names(self):
        result = ParsedTaskResult(title="Pay rent", due_date="2026-11-01")

        assert result.due_date == "2026-11-01"

    def test_all_fields_optional(self):
        result = ParsedTaskResult()

        assert result.title is None
        assert result.status is None


@pytest.mark.unit
class TestTask:

    def test_defaults(self):
        task = Task(id="abc", title="Walk the dog")

        assert task.status is TaskStatus.TODO
        assert task.priority is TaskPriority.MEDIUM
        assert task.description == ""
        assert task.due_date == ""
        assert task.created_at > 0

    def test_from_parsed(self):
        result = ParsedTaskResult(
            title="Fix the server",
            description="Prod is down",
            status="In Progress",
            priority="Critical",
            dueDate="2026-10-19T23:59:59",
        )

        task = Task.from_parsed("id1", result)

        assert task.id == "id1"
        assert task.title == "Fix the server"
        assert task.description == "Prod is down"
        assert task.status is TaskStatus.IN_PROGRESS
        assert task.priority is TaskPriority.CRITICAL
        assert task.due_date == "2026-10-19T23:59:59"

    @pytest.mark.parametrize("status,priority", [
        (None, None),
        ("todo", "urgent"),
        ("done", "high"),
    ])
    def test_from_parsed_falls_back_to_defaults(self, status, priority):
        task = Task.from_parsed("id2", ParsedTaskResult(title="X", status=status, priority=priority))

        assert task.status is TaskStatus.TODO
        assert task.priority is TaskPriority.MEDIUM

    def test_from_parsed_without_title(self):
        task = Task.from_parsed("id3", ParsedTaskResult())

        assert task.title == ""
        assert task.due_date == ""

    def test_dict_round_trip(self):
        task = Task(id="abc", title="Walk the dog", status=TaskStatus.DONE, priority=TaskPriority.LOW)

        data = task.to_dict()

        assert data["status"] == "Done"
        assert data["priority"] == "Low"
        assert Task.from_dict(data) == task


@pytest.mark.unit
class TestAudioModels:

    def test_energy_verdict(self):
        assert EnergyVerdict(level=40.0, threshold=15, is_silent=False).is_sound is True
        assert EnergyVerdict(level=3.0, threshold=15, is_silent=True).is_sound is False

    def test_clip_duration(self):
        clip = AudioClip(data=b"", mime_type="audio/wav", sample_rate=16000,
                         channels=1, fragment_count=10, pcm_bytes=32000)

        assert clip.duration_seconds == 1.0

    def test_clip_base64(self):
        clip = AudioClip(data=b"RIFF\x00\x01", mime_type="audio/wav", sample_rate=16000,
                         channels=1, fragment_count=1)

        assert base64.b64decode(clip.to_base64()) == b"RIFF\x00\x01"
