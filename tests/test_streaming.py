"""
Tests for the run log event stream.

Run with: pytest tests/
"""

import asyncio
import json

from gradely.models import Run
from gradely.store import Store
from gradely.streaming import MAX_POLLS, sse_event, stream_run_events


class ScriptedRunStore:
    """find_run returns a scripted sequence of run states, repeating the last."""

    def __init__(self, statuses):
        self.statuses = list(statuses)
        self.polls = 0

    def find_run(self, run_id):
        status = self.statuses[min(self.polls, len(self.statuses) - 1)]
        self.polls += 1
        return Run(id=run_id, submission_id="s1", status=status, logs=f"poll {self.polls}\n")


def collect(stream):
    async def gather():
        return [frame async for frame in stream]
    return asyncio.run(gather())


def parse_frame(frame):
    event_line, data_line, _, _ = frame.split("\n")
    return event_line[len("event: "):], json.loads(data_line[len("data: "):])


def test_sse_event_format():
    assert sse_event("end", {"done": True}) == 'event: end\ndata: {"done": true}\n\n'


def test_stream_ends_on_terminal_status():
    """FAILED on the third poll: three messages, then end."""
    store = ScriptedRunStore(["PENDING", "RUNNING", "FAILED"])
    frames = [parse_frame(f) for f in collect(stream_run_events(store, "r1", interval=0))]

    assert [event for event, _ in frames] == ["message", "message", "message", "end"]
    assert frames[2][1] == {"status": "FAILED", "logs": "poll 3\n"}
    assert frames[3][1] == {"done": True}


def test_stream_passed_run_single_message():
    store = ScriptedRunStore(["PASSED"])
    frames = collect(stream_run_events(store, "r1", interval=0))
    assert len(frames) == 2


def test_stream_stops_at_poll_cap():
    """A run stuck in RUNNING gets exactly MAX_POLLS messages."""
    store = ScriptedRunStore(["RUNNING"])
    frames = [parse_frame(f) for f in collect(stream_run_events(store, "r1", interval=0))]

    messages = [f for f in frames if f[0] == "message"]
    assert len(messages) == MAX_POLLS == 120
    assert frames[-1] == ("end", {"done": True})


def test_stream_unknown_run():
    frames = [parse_frame(f) for f in collect(stream_run_events(Store(), "missing", interval=0))]
    assert frames == [("end", {"error": "not_found"})]


def test_stream_stops_on_disconnect():
    store = ScriptedRunStore(["RUNNING"])
    checks = []

    async def is_disconnected():
        checks.append(1)
        return len(checks) > 2

    frames = collect(stream_run_events(store, "r1", interval=0, is_disconnected=is_disconnected))
    assert len(frames) == 2
    assert all(f.startswith("event: message") for f in frames)


def test_stream_reads_real_store():
    store = Store()
    run = store.create_run("s1")
    store.update_run(run.id, status="PASSED", append_log="done")

    frames = [parse_frame(f) for f in collect(stream_run_events(store, run.id, interval=0))]
    assert frames[0] == ("message", {"status": "PASSED", "logs": "done\n"})
