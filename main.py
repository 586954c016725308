"""Entry point for the GELF UDP input."""

import logging
import os
import signal
import sys
import threading

from gelf_input.config import load_config
from gelf_input.dashboard import create_dashboard_app, run_dashboard
from gelf_input.dispatcher import DatagramDispatcher
from gelf_input.server import GelfUDPServer
from gelf_input.sink import EventFileWriter


def main():
    logging.basicConfig(
        level=os.environ.get("GELF_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )

    config = load_config(sys.argv[1] if len(sys.argv) > 1 else None)
    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logging.getLogger(__name__).info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    writer = EventFileWriter(
        config.output_dir, config.output_filename,
        config.flush_count, config.flush_timeout_sec,
    )
    writer.start()
    dispatcher = DatagramDispatcher(config, writer)
    server = GelfUDPServer(config, dispatcher, shutdown_event)

    if config.dashboard_port:
        app = create_dashboard_app(config, dispatcher.metrics, dispatcher.drop_tracker)
        dash_thread = threading.Thread(target=run_dashboard, args=(app, config.dashboard_port), daemon=True)
        dash_thread.start()
        logging.getLogger(__name__).info("Dashboard running on port %d", config.dashboard_port)

    try:
        server.start()
    finally:
        server.stop()
        writer.stop()


if __name__ == "__main__":
    main()
