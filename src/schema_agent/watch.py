from __future__ import annotations
import logging
from pathlib import Path
import time
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from schema_agent.commands.generate import GenerationRequest, run_generation
from schema_agent.errors import SchemaAgentError

log = logging.getLogger(__name__)


class Handler(FileSystemEventHandler):
    def __init__(self, request: GenerationRequest, debounce: float = 0.8):
        self.request = request
        self.debounce = debounce
        self._last = 0.0

    def on_any_event(self, event):
        if event.is_directory:
            return
        p = Path(str(event.src_path))
        if p.suffix.lower() != ".xml":
            return

        # editors emit bursts of events per save
        now = time.time()
        if now - self._last < self.debounce:
            return
        self._last = now

        log.info("%s changed, regenerating", p)
        try:
            run_generation(self.request)
        except (SchemaAgentError, OSError) as e:
            # keep watching; the next save may fix the fragment
            log.error("Generation failed: %s", e)


def watch(request: GenerationRequest) -> None:
    run_generation(request)
    handler = Handler(request)
    obs = Observer()
    obs.schedule(handler, str(request.fragment_root), recursive=True)
    obs.start()
    log.info("Watching %s (Ctrl+C to stop)", request.fragment_root)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        obs.stop()
        obs.join()
