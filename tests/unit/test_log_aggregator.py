# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Unit tests for the aggregation session.
"""
import random

import pytest

from svctail.errors import LogParseError, LogSourceError, UsageError
from svctail.MANAGERS.log_aggregator import AggregationSession, merge_history
from svctail.MODELS.log_line import LogStream
from svctail.MODELS.log_source import HistoricalRead, LogSource
from svctail.MODELS.service_definition import (
    ServiceCommands,
    ServiceDefinition,
    ServiceGroupDefinition,
)
from svctail.UTILS.settings import HandoffMode, Settings

FAST = Settings(poll_interval=0.01)


def _service(writer, launch="run"):
    return ServiceDefinition(
        name=writer.service_name,
        commands=ServiceCommands(launch=launch),
        log_file=writer.log_file,
    )


class TestHistory:
    """Tests for the historical phase."""

    def test_two_sources_sorted_by_time(self, run_log, at):
        a = run_log("A")
        for s in (1, 2, 3):
            a.write(f"A{s}", timestamp=at(s))
        b = run_log("B")
        b.write("B0", timestamp=at(0))
        b.write("B4", timestamp=at(4))

        session = AggregationSession([_service(a), _service(b)], settings=FAST)
        lines = session.history()

        assert [line.message for line in lines] == ["B0", "A1", "A2", "A3", "B4"]
        assert [line.service_name for line in lines] == ["B", "A", "A", "A", "B"]
        assert session.multiple

    def test_ties_keep_scan_order(self, run_log, at):
        a = run_log("A")
        a.write("a-first", timestamp=at(0))
        a.write("a-second", timestamp=at(0))
        b = run_log("B")
        b.write("b-first", timestamp=at(0))
        group = ServiceGroupDefinition(name="g", services=[_service(b), _service(a)])

        lines = AggregationSession([group], settings=FAST).history()

        assert [line.message for line in lines] == ["b-first", "a-first", "a-second"]

    def test_history_is_sorted_permutation(self, run_log, at):
        rng = random.Random(42)
        writers = [run_log(f"svc{i}") for i in range(4)]
        written = []
        for writer in writers:
            for n in range(25):
                line = writer.write(f"{writer.service_name}-{n}", timestamp=at(rng.randint(0, 30)))
                written.append(line)

        lines = AggregationSession([_service(w) for w in writers], settings=FAST).history()

        timestamps = [line.timestamp for line in lines]
        assert timestamps == sorted(timestamps)
        assert sorted(line.message for line in lines) == sorted(line.message for line in written)
        assert len(lines) == len(written)

    def test_launchless_service_contributes_nothing(self, run_log, tmp_path, at):
        web = run_log("web")
        web.write("hello", timestamp=at(0))
        idle = ServiceDefinition(name="idle", log_file=str(tmp_path / "does-not-exist.log"))

        session = AggregationSession([_service(web), idle], settings=FAST)

        assert [line.message for line in session.history()] == ["hello"]
        assert [source.service_name for source in session.sources] == ["web"]

    def test_missing_run_log_aborts(self, run_log, tmp_path, at):
        web = run_log("web")
        web.write("hello", timestamp=at(0))
        ghost = ServiceDefinition(
            name="ghost",
            commands=ServiceCommands(launch="run"),
            log_file=str(tmp_path / "ghost.log"),
        )
        session = AggregationSession([_service(web), ghost], settings=FAST)

        with pytest.raises(LogSourceError):
            session.history()
        with pytest.raises(RuntimeError):
            session.live()
        assert session.followers == []

    def test_invalid_line_aborts(self, run_log, at):
        web = run_log("web")
        web.write("hello", timestamp=at(0))
        with open(web.log_file, "a") as f:
            f.write("{}\n")

        with pytest.raises(LogParseError):
            AggregationSession([_service(web)], settings=FAST).history()

    def test_history_only_once(self, run_log):
        session = AggregationSession([_service(run_log("web"))], settings=FAST)
        session.history()
        with pytest.raises(RuntimeError):
            session.history()

    def test_empty_selection(self):
        with pytest.raises(UsageError):
            AggregationSession([])


def test_merge_history_is_stable(at):
    def read(name, *seconds):
        source = LogSource(service_name=name, path=f"/{name}.log")
        entries = [
            {"name": name, "time": at(s), "stream": "stdout", "message": f"{name}{i}"}
            for i, s in enumerate(seconds)
        ]
        return HistoricalRead(source=source, entries=entries, lines_consumed=len(entries))

    merged = merge_history([read("x", 5, 1, 1), read("y", 1, 0)])
    assert [line.message for line in merged] == ["y1", "x1", "x2", "y0", "x0"]


class TestLive:
    """Tests for the live phase."""

    @pytest.mark.parametrize("handoff", [HandoffMode.OFFSET, HandoffMode.LINES])
    def test_exactly_once_across_phases(self, run_log, at, collect, handoff):
        web = run_log("web")
        web.write("before", timestamp=at(0))

        settings = Settings(poll_interval=0.01, handoff=handoff)
        with AggregationSession([_service(web)], settings=settings) as session:
            history = session.history()
            web.write("between", timestamp=at(1))
            live = session.live()
            web.write("after", timestamp=at(2))
            lines = collect(live, 2, session.close)

        assert [line.message for line in history] == ["before"]
        assert [line.message for line in lines] == ["between", "after"]
        assert session.channel.empty()

    def test_live_requires_history(self, run_log):
        session = AggregationSession([_service(run_log("web"))], settings=FAST)
        with pytest.raises(RuntimeError):
            session.live()

    def test_fan_in_preserves_per_source_order(self, run_log, at, collect):
        a = run_log("A")
        b = run_log("B")
        with AggregationSession([_service(a), _service(b)], settings=FAST) as session:
            session.history()
            live = session.live()
            for n in range(10):
                a.write(f"A{n}", timestamp=at(n))
                b.write(f"B{n}", timestamp=at(n))
            lines = collect(live, 20, session.close)

        assert [l.message for l in lines if l.service_name == "A"] == [f"A{n}" for n in range(10)]
        assert [l.message for l in lines if l.service_name == "B"] == [f"B{n}" for n in range(10)]

    def test_follower_failure_is_isolated(self, run_log, at, collect):
        a = run_log("A")
        b = run_log("B")
        reported = []
        with AggregationSession([_service(a), _service(b)], settings=FAST,
                                on_error=reported.append) as session:
            session.history()
            live = session.live()
            with open(a.log_file, "a") as f:
                f.write("broken\n")
            b.write("still here", timestamp=at(0))
            first = collect(live, 1, session.close)
            b.write("and here", timestamp=at(1))
            second = collect(live, 1, session.close)
            session.followers[0].join(5)

        assert [line.message for line in first + second] == ["still here", "and here"]
        assert len(session.failures) == 1
        assert session.failures[0].source.service_name == "A"
        assert reported == session.failures

    def test_live_ends_when_nothing_can_arrive(self, tmp_path):
        idle = ServiceDefinition(name="idle", log_file=str(tmp_path / "idle.log"))
        session = AggregationSession([idle], settings=FAST)
        assert session.history() == []
        assert list(session.live()) == []

    def test_close_stops_followers(self, run_log, at):
        a = run_log("A")
        b = run_log("B")
        session = AggregationSession([_service(a), _service(b)], settings=FAST)
        session.history()
        live = session.live()
        assert all(follower.is_alive() for follower in session.followers)

        session.close(timeout=5)

        assert session.closed
        assert not any(follower.is_alive() for follower in session.followers)
        assert list(live) == []

    def test_run_emits_history_then_live(self, run_log, at):
        web = run_log("web")
        web.write("old", LogStream.STDOUT, at(1))
        web.write("older", LogStream.STDERR, at(0))
        session = AggregationSession([_service(web)], settings=FAST)
        emitted = []

        def emit(line):
            emitted.append(line.message)
            if line.message == "older":
                web.write("new", timestamp=at(2))
            if line.message == "new":
                session.close()

        session.run(emit)

        assert emitted == ["older", "old", "new"]
