import asyncio
import argparse
import json
import sys
import threading
from datetime import datetime

from browser import BrowserController
from config import MAX_RUN_SECONDS, PORTAL_URL
from engine import AutomationEngine
from errors import DetectionAmbiguous
from models import AutomationConfig
from recovery import RecoveryStore
from status import StatusKind, StatusLine

CONTROL_KEYS = {
    "p": {"action": "pause"},
    "r": {"action": "resume"},
    "s": {"action": "stop"},
    "d": {"action": "toggle-detail-view"},
}
HELP = "Commands: p=pause r=resume s=stop d=details q=close"


def load_config(path: str) -> AutomationConfig:
    with open(path) as f:
        return AutomationConfig.model_validate(json.load(f))


def resolve_config(config_path: str | None, record: dict | None) -> AutomationConfig:
    """Applicant data from --config, else from the recovered session."""
    if config_path:
        return load_config(config_path)
    return AutomationConfig.model_validate(record["config"])


def announce(line: StatusLine) -> None:
    if line.kind == StatusKind.MANUAL:
        print(f">>> Needs you: {line.message} (r + Enter resumes)", flush=True)


def listen_for_controls(loop: asyncio.AbstractEventLoop, engine: AutomationEngine, closing: asyncio.Event) -> None:
    """Read single-letter commands from stdin and hand them to the engine loop."""
    for line in sys.stdin:
        key = line.strip().lower()
        if key == "q":
            loop.call_soon_threadsafe(engine.stop)
            loop.call_soon_threadsafe(closing.set)
            return
        message = CONTROL_KEYS.get(key)
        if message is None:
            print(HELP, flush=True)
            continue
        future = asyncio.run_coroutine_threadsafe(engine.handle_message(message), loop)
        result = future.result()
        if result.get("details"):
            print(json.dumps(result["details"], indent=2), flush=True)


async def main(
    config_path: str | None,
    url: str,
    headless: bool = False,
    recover: bool = False,
    fill_only: bool = False,
    keep_open: bool = False,
):
    recovery = RecoveryStore()
    record = recovery.latest() if recover else None
    if recover and record is None:
        print("No recent session to recover", flush=True)
        return None
    if record is None and not config_path:
        print("ERROR: pass --config with the applicant data, or --recover", flush=True)
        sys.exit(1)

    print(f"Starting ISDE wizard automation", flush=True)
    print(f"Target: {record['url'] if record else url}", flush=True)
    print(f"Time limit: {MAX_RUN_SECONDS}s", flush=True)
    print(f"Headless: {headless}", flush=True)
    print("-" * 50, flush=True)

    browser = BrowserController()
    await browser.start(record["url"] if record and record.get("url") else url, headless=headless)
    engine = AutomationEngine(browser, recovery=recovery)

    try:
        if fill_only:
            try:
                filled = await engine.fill_current_page(resolve_config(config_path, record))
            except DetectionAmbiguous as e:
                print(f"Nothing filled: {e}", flush=True)
                return None
            return {"filled": filled}

        engine.attach()
        if record:
            engine.restore(record)
        else:
            engine.start(load_config(config_path))
        engine.status.subscribe(announce)

        closing = asyncio.Event()
        threading.Thread(
            target=listen_for_controls,
            args=(asyncio.get_running_loop(), engine, closing),
            daemon=True,
        ).start()
        print(HELP, flush=True)

        try:
            await asyncio.wait_for(engine.finished.wait(), timeout=MAX_RUN_SECONDS)
        except asyncio.TimeoutError:
            print(f"\nTIMEOUT: Exceeded {MAX_RUN_SECONDS}s limit", flush=True)
            engine.stop()

        engine.metrics.print_summary()
        results = engine.metrics.get_summary()
        results["status"] = engine.status.latest.to_dict()
        results["status_history"] = [line.to_dict() for line in engine.status.history]

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        results_file = f"results_{timestamp}.json"
        with open(results_file, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to: {results_file}", flush=True)

        if keep_open and engine.status.latest.kind == StatusKind.COMPLETED:
            # Leave the tab open for the applicant to accept and submit
            print("Review the application in the browser. Press q + Enter to close.", flush=True)
            await closing.wait()
        return results
    finally:
        await browser.stop()


def cli() -> None:
    # Force unbuffered output
    sys.stdout.reconfigure(line_buffering=True)
    sys.stderr.reconfigure(line_buffering=True)

    parser = argparse.ArgumentParser(description="ISDE heat-pump subsidy wizard automation")
    parser.add_argument("--config", help="JSON file with the applicant data")
    parser.add_argument("--url", default=PORTAL_URL, help="Portal start page")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run browser in headless mode"
    )
    parser.add_argument(
        "--recover",
        action="store_true",
        help="Resume the most recent interrupted session"
    )
    parser.add_argument(
        "--fill-only",
        action="store_true",
        help="Fill the known fields on the opened page and exit"
    )
    parser.add_argument(
        "--keep-open",
        action="store_true",
        help="Keep the browser open on the terms page until q is entered"
    )
    args = parser.parse_args()

    asyncio.run(main(args.config, args.url, headless=args.headless, recover=args.recover, fill_only=args.fill_only, keep_open=args.keep_open))


if __name__ == "__main__":
    cli()
