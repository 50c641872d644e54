"""Local JSON storage for tasks and recorded clips."""

import json
import logging
import random
import string
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..models.audio import AudioClip
from ..models.task import Task

logger = logging.getLogger(__name__)


class TaskStore:
    """Keeps the task list in a JSON file under the data directory."""

    TASKS_FILENAME = "tasks.json"

    def __init__(self, data_dir: str = "./data"):
        """Initialize task store with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.clips_dir = self.data_dir / "clips"
        self.tasks_file = self.data_dir / self.TASKS_FILENAME

        self._ensure_directories()

        logger.info(f"TaskStore initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        for directory in [self.data_dir, self.clips_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    @staticmethod
    def generate_id() -> str:
        """Random 9-character base36 task ID."""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))

    def list_tasks(self) -> List[Task]:
        """Load all stored tasks; a missing file means no tasks."""
        if not self.tasks_file.exists():
            return []

        with open(self.tasks_file, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return [Task.from_dict(item) for item in data]

    def save_tasks(self, tasks: List[Task]) -> None:
        """Replace the stored task list."""
        tmp_file = self.tasks_file.with_suffix(".json.tmp")
        with open(tmp_file, 'w', encoding='utf-8') as f:
            json.dump([task.to_dict() for task in tasks], f, indent=2, ensure_ascii=False)
        tmp_file.replace(self.tasks_file)
        logger.debug(f"Saved {len(tasks)} tasks to {self.tasks_file}")

    def add_task(self, task: Task) -> Task:
        tasks = self.list_tasks()
        tasks.append(task)
        self.save_tasks(tasks)
        logger.info(f"Task created: {task.id} '{task.title}'")
        return task

    def update_task(self, task: Task) -> Task:
        """Replace the stored task with the same ID.

        Raises:
            KeyError: If no task has that ID
        """
        tasks = self.list_tasks()
        for index, existing in enumerate(tasks):
            if existing.id == task.id:
                tasks[index] = task
                self.save_tasks(tasks)
                logger.info(f"Task updated: {task.id}")
                return task
        raise KeyError(f"Task not found: {task.id}")

    def delete_task(self, task_id: str) -> bool:
        """Delete a task. Returns False if it did not exist."""
        tasks = self.list_tasks()
        remaining = [task for task in tasks if task.id != task_id]
        if len(remaining) == len(tasks):
            logger.warning(f"Task not found for deletion: {task_id}")
            return False
        self.save_tasks(remaining)
        logger.info(f"Task deleted: {task_id}")
        return True

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.list_tasks():
            if task.id == task_id:
                return task
        return None

    def save_clip(self, clip: AudioClip, filename: Optional[str] = None) -> str:
        """Archive a recorded clip and return its path."""
        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"clip_{timestamp}.wav"

        clip_path = self.clips_dir / filename
        with open(clip_path, 'wb') as f:
            f.write(clip.data)

        logger.info(f"Clip saved: {clip_path} ({len(clip.data)} bytes)")
        return str(clip_path)
