"""Terminal screen that renders recorder status and parsed tasks."""

import logging
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.recording import RecorderEvent, RecorderState
from ..models.task import ParsedTaskResult, Task
from ..services.publisher import RecorderEventPublisher

logger = logging.getLogger(__name__)


class VoiceTaskScreen:
    """Rich console front-end subscribed to recorder events."""

    def __init__(self, console: Optional[Console] = None, topic: str = RecorderEventPublisher.TOPIC):
        self.console = console or Console()
        self.topic = topic
        self.last_event: Optional[RecorderEvent] = None
        pub.subscribe(self.on_recorder_event, self.topic)

    def on_recorder_event(self, event: RecorderEvent) -> None:
        self.last_event = event
        if event.event_type == "state_changed":
            if event.state is RecorderState.RECORDING:
                self.console.print("🎙️  Listening... (stops automatically, press Enter to stop now)", style="bold red")
            elif event.state is RecorderState.FINALIZING:
                self.console.print("⏹️  Recording stopped", style="yellow")
        elif event.event_type == "processing_started":
            self.console.print("🧠 Analyzing voice command...", style="blue")

    def show_error(self, message: str) -> None:
        self.console.print(f"❌ {message}", style="bold red")

    def show_result(self, result: ParsedTaskResult) -> None:
        table = Table(title="Voice command", show_header=False, box=None)
        table.add_column("Field", style="cyan", no_wrap=True)
        table.add_column("Value")
        table.add_row("Transcript", result.original_transcript or "-")
        table.add_row("Title", result.title or "-")
        table.add_row("Description", result.description or "-")
        table.add_row("Status", result.status or "-")
        table.add_row("Priority", result.priority or "-")
        table.add_row("Due", result.due_date or "-")
        self.console.print(table)

    def show_task(self, task: Task, saved: bool) -> None:
        body = Text()
        body.append(f"{task.title}\n", style="bold")
        if task.description:
            body.append(f"{task.description}\n")
        body.append(f"{task.status.value} · {task.priority.value}")
        if task.due_date:
            body.append(f" · due {task.due_date}")
        title = f"✅ Task {task.id} saved" if saved else f"Task draft {task.id}"
        self.console.print(Panel(body, title=title, border_style="green" if saved else "white"))

    def close(self) -> None:
        try:
            pub.unsubscribe(self.on_recorder_event, self.topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
