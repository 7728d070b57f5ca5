#!/usr/bin/env python3
"""
Tests for superseding dataset loads, the playback session and configuration.
"""

import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

# Add project root to path for testing
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from movilo import (
    DatasetSlot, HeaderShapeError, MissingHeaderSentinelError, MoviloConfig,
    ParseError, PlaybackSession, Point3D, parse_marker_file
)


MARKER_FILE = "Time\tA\t\t\n" + "".join(
    f"{i * 0.02:.2f}\t{i}\t0\t0\n" for i in range(12)
)

FORCE_FILE = (
    "nRows=1\nnColumns=13\nendheader\n"
    "time\tFx1\tFy1\tFz1\tPx1\tPy1\tPz1\tFx2\tFy2\tFz2\tPx2\tPy2\tPz2\n"
    "0.0\t1\t2\t3\t4\t5\t6\t0\t0\t0\t0\t0\t0\n"
)

SINGLE_PLATE_FILE = (
    "nRows=1\nnColumns=7\nendheader\n"
    "time\tFx1\tFy1\tFz1\tPx1\tPy1\tPz1\n"
    "0.0\t1\t2\t3\t4\t5\t6\n"
)


def upper_parse(data, filename):
    if data == "bad":
        raise HeaderShapeError("bad header", filename)
    return data.upper()


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


def test_slot_publishes_successful_load():
    slot = DatasetSlot(upper_parse)
    assert slot.load("good", "a.tsv") == "GOOD"
    state = slot.state
    assert state.dataset == "GOOD"
    assert state.filename == "a.tsv"
    assert state.error is None
    assert state.revision == 1
    assert slot.generation == 1


def test_failed_load_keeps_previous_dataset():
    slot = DatasetSlot(upper_parse)
    slot.load("good", "a.tsv")
    with pytest.raises(HeaderShapeError):
        slot.load("bad", "b.tsv")
    state = slot.state
    assert state.dataset == "GOOD"
    assert state.filename == "b.tsv"
    assert isinstance(state.error, HeaderShapeError)
    assert state.revision == 1

    slot.load("better", "c.tsv")
    assert slot.error is None
    assert slot.dataset == "BETTER"


def test_superseded_parse_is_not_published(executor):
    started = threading.Event()
    release = threading.Event()

    def parse(data, filename):
        if data == "slow":
            started.set()
            assert release.wait(5)
        return data.upper()

    slot = DatasetSlot(parse, executor, name="marker")
    first = slot.submit("slow", "first.tsv")
    assert started.wait(5)
    second = slot.submit("fast", "second.tsv")

    assert second.result(5) == "FAST"
    release.set()
    # The superseded parse still completes, but its result is discarded
    assert first.result(5) == "SLOW"
    assert slot.dataset == "FAST"
    assert slot.state.filename == "second.tsv"
    assert slot.state.revision == 1


def test_superseded_failure_is_not_published(executor):
    started = threading.Event()
    release = threading.Event()

    def parse(data, filename):
        if data == "bad":
            started.set()
            assert release.wait(5)
            raise HeaderShapeError("bad header", filename)
        return data.upper()

    slot = DatasetSlot(parse, executor)
    first = slot.submit("bad", "first.tsv")
    assert started.wait(5)
    slot.load("good", "second.tsv")
    release.set()

    with pytest.raises(HeaderShapeError):
        first.result(5)
    assert slot.error is None
    assert slot.dataset == "GOOD"


def test_submit_path_reports_missing_file(tmp_path):
    slot = DatasetSlot(upper_parse)
    try:
        future = slot.submit_path(tmp_path / "missing.tsv")
        with pytest.raises(OSError):
            future.result(5)
        assert isinstance(slot.error, OSError)
        assert slot.state.filename == "missing.tsv"
    finally:
        slot.close()


def test_session_loads_markers_into_timeline():
    with PlaybackSession() as session:
        dataset = session.load_marker_data(MARKER_FILE, "walk01.tsv")
        assert session.marker_data is dataset
        assert session.marker_file_name == "walk01.tsv"
        assert session.timeline.sequence_end == 10
        assert session.timeline.step_duration_ms == pytest.approx(20.0)

        session.timeline.play()
        session.tick(0)
        session.tick(45)
        snapshot = session.snapshot()
        assert snapshot.timeline.current_frame == 2
        assert snapshot.marker_frame.time == pytest.approx(0.04)
        assert snapshot.current_time == pytest.approx(0.04)
        assert snapshot.crop_end_time == pytest.approx(0.20)
        assert snapshot.force_frame is None
        assert snapshot.error is None


def test_session_force_frame_follows_marker_frame():
    with PlaybackSession() as session:
        session.load_marker_data(MARKER_FILE, "walk01.tsv")
        session.load_force_data(FORCE_FILE, "walk01_grf.mot")
        assert session.current_force_frame().plates[0].force.as_tuple() == (1.0, 2.0, 3.0)
        session.timeline.seek(3)
        # Force data shorter than marker data does not block playback
        assert session.current_force_frame() is None
        assert session.snapshot().marker_frame is not None


def test_empty_session_snapshot():
    with PlaybackSession() as session:
        snapshot = session.snapshot()
        assert snapshot.marker_frame is None
        assert snapshot.force_frame is None
        assert snapshot.crop_start_time == 0.0
        assert snapshot.current_time == 0.0
        assert snapshot.crop_end_time == 0.0
        assert session.tick(100) == 0


def test_session_error_display():
    with PlaybackSession() as session:
        session.load_marker_data(MARKER_FILE, "walk01.tsv")
        session.timeline.seek(4)

        with pytest.raises(MissingHeaderSentinelError):
            session.load_force_data("nRows=1\nnColumns=7\n0.0\t1\n", "broken.mot")
        assert isinstance(session.error, MissingHeaderSentinelError)
        assert session.force_file_name is None
        assert session.marker_file_name == "walk01.tsv"

        with pytest.raises(ParseError):
            session.load_marker_data("0.0\t1\t2\t3\n", "noheader.tsv")
        assert isinstance(session.error, HeaderShapeError)
        assert session.marker_file_name is None
        # The timeline keeps the previously loaded markers
        assert session.marker_data.frame_count == 12
        assert session.timeline.current_frame == 4

        session.load_force_data(FORCE_FILE, "walk01_grf.mot")
        assert session.error is None
        assert session.force_file_name == "walk01_grf.mot"


def test_session_open_file_in_background(tmp_path):
    path = tmp_path / "walk01.tsv"
    path.write_text(MARKER_FILE, encoding="utf-8")
    with PlaybackSession() as session:
        session.timeline.play()
        session.open_marker_file(path).result(5)
        assert session.tick(0) == 0
        assert session.timeline.dataset.frame_count == 12
        assert session.marker_file_name == "walk01.tsv"
        assert session.tick(25) == 1


def test_config_from_yaml(tmp_path, caplog):
    path = tmp_path / "movilo.yaml"
    path.write_text(
        "parser:\n"
        "  missing_sentinels: ['-9999', '0.000000']\n"
        "  plate_count: 1\n"
        "  colour: blue\n"
        "playback:\n"
        "  looping: false\n",
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING, logger="Movilo"):
        config = MoviloConfig.from_yaml(path)

    assert config.parser.missing_sentinels == ("-9999", "0.000000")
    assert config.parser.plate_count == 1
    assert config.parser.header_sentinel == "endheader"
    assert config.playback.looping is False
    assert any("colour" in record.message for record in caplog.records)

    with PlaybackSession(config) as session:
        assert not session.timeline.looping
        dataset = session.load_force_data(SINGLE_PLATE_FILE, "single.mot")
        assert dataset.plate_count == 1


def test_config_must_be_mapping(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        MoviloConfig.from_yaml(path)

    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert MoviloConfig.from_yaml(empty) == MoviloConfig()


def test_config_single_string_becomes_one_item_tuple(tmp_path, caplog):
    path = tmp_path / "movilo.yaml"
    path.write_text(
        "parser:\n"
        "  missing_sentinels: '0.000000'\n"
        "  marker_extensions: .tsv\n",
        encoding="utf-8",
    )
    config = MoviloConfig.from_yaml(path)
    assert config.parser.missing_sentinels == ("0.000000",)
    assert config.parser.marker_extensions == (".tsv",)

    # Only the exact sentinel text is missing, not substrings of it
    dataset = parse_marker_file("Time\tA\t\t\n0.0\t0\t1\t1\n0.1\t0.000000\t1\t1\n",
                                config=config.parser)
    assert dataset.frames[0].positions[0] == Point3D(0.0, 1.0, 1.0)
    assert dataset.frames[1].positions[0] is None

    with caplog.at_level(logging.WARNING, logger="Movilo"):
        parse_marker_file("Time\tA\t\t\n0.0\t1\t1\t1\n", "walk.csv", config=config.parser)
    assert any("extension" in record.message for record in caplog.records)


def test_config_rejects_unquoted_sentinel():
    # YAML reads 0.000000 as the float 0.0, so the sentinel text cannot be recovered
    with pytest.raises(ValueError, match="quote"):
        MoviloConfig.from_dict({"parser": {"missing_sentinels": [0.000000]}})


@pytest.mark.parametrize("section, key, value", [
    ("parser", "plate_count", "two"),
    ("parser", "plate_count", True),
    ("parser", "header_sentinel", 5),
    ("parser", "marker_extensions", 3),
    ("parser", "missing_sentinels", None),
    ("playback", "looping", "yes"),
    ("playback", "looping", 1),
    ("playback", "parse_workers", 1.5),
])
def test_config_rejects_wrong_types(section, key, value):
    with pytest.raises(ValueError, match=key):
        MoviloConfig.from_dict({section: {key: value}})


def test_config_accepts_compatible_values():
    config = MoviloConfig.from_dict({
        "parser": {"plate_count": None, "completeness_warning_percent": 80},
        "playback": {"looping": False, "parse_workers": 3},
    })
    assert config.parser.plate_count is None
    assert config.parser.completeness_warning_percent == 80.0
    assert isinstance(config.parser.completeness_warning_percent, float)
    assert config.playback.parse_workers == 3


def test_config_section_must_be_mapping():
    with pytest.raises(ValueError):
        MoviloConfig.from_dict({"parser": ["plate_count", 2]})
