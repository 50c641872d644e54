"""Main application entry point for VoiceTask."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import VoiceTaskConfig
from .exceptions import AudioSetupError, MicrophoneAccessError
from .models.audio import AudioClip
from .models.task import ParsedTaskResult, Task
from .services.publisher import RecorderEventPublisher
from .services.recorder_controller import RecorderController
from .storage.task_store import TaskStore
from .transcription.gemini_parser import GeminiTaskParser
from .ui.voice_screen import VoiceTaskScreen

logger = logging.getLogger(__name__)


class VoiceTaskApp:
    """Records one voice command and turns it into a saved task."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        self.config = VoiceTaskConfig(config_path)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)

        self.result: Optional[ParsedTaskResult] = None
        self._finished: Optional[asyncio.Event] = None
        self.controller: Optional[RecorderController] = None
        self.screen: Optional[VoiceTaskScreen] = None

    def init(self) -> None:
        logger.info("Initializing services...")

        api_key = self.config.get_api_key()
        if not api_key:
            logger.warning("No Gemini API key configured; parsing will fail")

        self.parser = GeminiTaskParser(
            api_key=api_key,
            model=self.config.get('gemini.model', 'gemini-2.5-flash'),
            timeout_seconds=self.config.get('gemini.timeout_seconds'),
        )
        self.task_store = TaskStore(self.config.get_data_directory())
        self.publisher = RecorderEventPublisher()
        self.screen = VoiceTaskScreen()
        self.controller = RecorderController.from_config(
            self.config,
            self.parser,
            on_processing_start=self.on_processing_start,
            on_processing_complete=self.on_processing_complete,
            on_error=self.on_error,
            publisher=self.publisher,
            on_clip_ready=self.on_clip_ready if self.config.get('storage.keep_clips', False) else None,
        )

    def on_processing_start(self) -> None:
        logger.info("Voice command handed to parser")

    def on_processing_complete(self, result: ParsedTaskResult) -> None:
        self.result = result
        if self._finished:
            self._finished.set()

    def on_error(self, message: str) -> None:
        self.screen.show_error(message)
        if self._finished:
            self._finished.set()

    def on_clip_ready(self, clip: AudioClip) -> None:
        self.task_store.save_clip(clip)

    async def run(self, save: bool = True, max_duration: Optional[float] = None) -> Optional[Task]:
        """Record one command, wait for the parse and optionally save the task."""
        loop = asyncio.get_running_loop()
        self._finished = asyncio.Event()
        stop_timer = None
        reading_stdin = False

        try:
            try:
                await self.controller.start()
            except (MicrophoneAccessError, AudioSetupError):
                return None

            try:
                loop.add_reader(sys.stdin, self._on_enter)
                reading_stdin = True
            except (NotImplementedError, ValueError, OSError) as e:
                logger.info(f"Manual stop unavailable, relying on silence detection: {e}")

            if max_duration:
                stop_timer = loop.call_later(max_duration, self.controller.stop)

            await self._finished.wait()
        finally:
            if stop_timer is not None:
                stop_timer.cancel()
            if reading_stdin:
                loop.remove_reader(sys.stdin)
            self.controller.close()

        if self.result is None:
            return None

        self.screen.show_result(self.result)
        task = Task.from_parsed(self.task_store.generate_id(), self.result)
        if save:
            self.task_store.add_task(task)
        self.screen.show_task(task, saved=save)
        return task

    def _on_enter(self) -> None:
        if not sys.stdin.readline():
            # EOF, nobody is typing
            asyncio.get_running_loop().remove_reader(sys.stdin)
            return
        self.controller.stop()

    def cleanup(self) -> None:
        if self.controller:
            self.controller.close()
        if self.screen:
            self.screen.close()


def setup_logging(config: VoiceTaskConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voicetask.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - warnings only, the screen covers normal progress
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("VoiceTask starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for VoiceTask."""
    parser = argparse.ArgumentParser(
        description="VoiceTask - create tasks by voice",
        epilog="Speak your task; recording stops after 2 seconds of silence or when you press Enter."
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Show the parsed task without saving it"
    )

    parser.add_argument(
        "--max-duration",
        type=float,
        help="Stop recording after this many seconds even if speech continues"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"VoiceTask v{__version__}"
    )

    args = parser.parse_args()

    app = VoiceTaskApp(args.config, args.log_level)
    try:
        app.init()
        task = asyncio.run(app.run(save=not args.no_save, max_duration=args.max_duration))
        app.cleanup()
        if task is None:
            sys.exit(1)
    except KeyboardInterrupt:
        app.cleanup()
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
