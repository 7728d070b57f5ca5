#!/usr/bin/env python3
"""
Motion Capture File Inspector

Parses marker-trajectory and force-plate files with the Movilo parsers and
reports what a viewer would load: markers, frames, sample interval, missing
data and plate contact. Optionally exports the parsed tables to CSV and runs a
headless playback at a given display refresh rate to check the timeline.

Files are classified by extension (.mot is always force data) and, for the
shared .txt/.tsv/.csv extensions, by content: anything with an ``endheader``
line is treated as a force file.

Usage:
    python inspect_capture.py FILE [FILE ...] [--config CONFIG] [--export-dir DIR]
                              [--play SECONDS] [--refresh-hz HZ] [--no-loop]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from movilo import (
    ForceDataset,
    MarkerDataset,
    MoviloConfig,
    ParseError,
    TimelineController,
    configure_logging,
    load_force_file,
    load_marker_file,
)


def is_force_file(path: Path, header_sentinel: str) -> bool:
    if path.suffix.lower() == '.mot':
        return True
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        for line in f:
            if line.strip().lower() == header_sentinel.lower():
                return True
    return False


def simulate_playback(dataset: MarkerDataset, seconds: float, refresh_hz: float,
                      looping: bool) -> Dict:
    """Drive a timeline with evenly spaced ticks and report where it ends up."""
    timeline = TimelineController(dataset, looping=looping)
    if not timeline.is_playable:
        return {'playable': False}

    timeline.play()
    interval_ms = 1000.0 / refresh_hz
    n_ticks = int(seconds * refresh_hz) + 1
    steps = 0
    stopped_at_tick = None
    for i in range(n_ticks):
        steps += timeline.tick(i * interval_ms)
        if not timeline.playing and stopped_at_tick is None:
            stopped_at_tick = i

    return {
        'playable': True,
        'ticks': n_ticks,
        'steps': steps,
        'final_frame': timeline.current_frame,
        'sequence_end': timeline.sequence_end,
        'step_duration_ms': timeline.step_duration_ms,
        'stopped_at_tick': stopped_at_tick,
    }


def print_marker_report(dataset: MarkerDataset) -> None:
    summary = dataset.get_summary()
    names = summary['marker_names']
    print(f"\n🎯 Marker file: {summary['source_name']}")
    print(f"   Markers: {summary['num_markers']} {names[:5]}{'...' if len(names) > 5 else ''}")
    print(f"   Frames: {summary['num_frames']} (playable through frame {summary['sequence_end']})")
    print(f"   Duration: {summary['duration']:.3f} s at {summary['sampling_rate']:.1f} Hz")
    print(f"   Completeness: {summary['completeness_percent']:.1f}% "
          f"({summary['missing_points']}/{summary['total_points']} missing)")


def print_force_report(dataset: ForceDataset) -> None:
    summary = dataset.get_summary()
    print(f"\n🦶 Force file: {summary['source_name']}")
    print(f"   Plates: {summary['num_plates']} {summary['plate_labels']}")
    print(f"   Frames: {summary['num_frames']} (declared: {summary['declared_rows']})")
    for label, contact in zip(summary['plate_labels'], summary['contact_frames']):
        print(f"   Plate '{label or 'unnamed'}' in contact for {contact} frames")


def inspect_files(paths: List[Path], config: MoviloConfig, export_dir: Optional[Path],
                  play_seconds: Optional[float], refresh_hz: float, looping: bool) -> int:
    failures = 0
    results = []

    for path in tqdm(paths, desc="Parsing", unit="file", disable=len(paths) < 2):
        try:
            if is_force_file(path, config.parser.header_sentinel):
                results.append(load_force_file(path, config.parser))
            else:
                results.append(load_marker_file(path, config.parser))
        except (ParseError, OSError) as e:
            failures += 1
            print(f"\n❌ {path.name}: {e}")

    for dataset in results:
        if isinstance(dataset, MarkerDataset):
            print_marker_report(dataset)
            if play_seconds:
                outcome = simulate_playback(dataset, play_seconds, refresh_hz, looping)
                if not outcome['playable']:
                    print("   Playback: disabled (fewer than two frames or no sample interval)")
                else:
                    print(f"   Playback: {outcome['steps']} steps over {outcome['ticks']} ticks "
                          f"at {refresh_hz:g} Hz, final frame {outcome['final_frame']}"
                          f"/{outcome['sequence_end']}")
                    if outcome['stopped_at_tick'] is not None:
                        print(f"   Playback stopped at crop end on tick {outcome['stopped_at_tick']}")
        else:
            print_force_report(dataset)

        if export_dir is not None:
            export_dir.mkdir(parents=True, exist_ok=True)
            base = Path(dataset.source_name or 'capture').stem
            kind = 'marker' if isinstance(dataset, MarkerDataset) else 'force'
            output = dataset.export_to_csv(str(export_dir / f"{base}_{kind}_data.csv"))
            print(f"   Exported to: {output}")

    print(f"\n📊 Parsed {len(results)} of {len(paths)} files")
    return failures


def main():
    """Main function to run the capture inspector."""
    parser = argparse.ArgumentParser(
        description="Inspect marker and force-plate files and simulate playback",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python inspect_capture.py walk01_markers.tsv walk01_grf.mot
  python inspect_capture.py data/*.tsv --export-dir parsed_csv
  python inspect_capture.py walk01_markers.tsv --play 10 --refresh-hz 144 --no-loop
        """
    )

    parser.add_argument('files', nargs='+', help='Marker (.txt/.tsv/.csv) or force (.mot) files')
    parser.add_argument('--config', default=None,
                        help='YAML file overriding parser/playback settings')
    parser.add_argument('--export-dir', default=None,
                        help='Directory to write parsed tables as CSV')
    parser.add_argument('--play', type=float, default=None, metavar='SECONDS',
                        help='Simulate this many seconds of playback for marker files')
    parser.add_argument('--refresh-hz', type=float, default=60.0,
                        help='Simulated display refresh rate (default: 60)')
    parser.add_argument('--no-loop', action='store_true',
                        help='Stop at the end of the crop window instead of looping')
    parser.add_argument('--verbose', action='store_true', help='Show debug logging')

    args = parser.parse_args()
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = MoviloConfig.from_yaml(args.config) if args.config else MoviloConfig()
    except (OSError, ValueError) as e:
        print(f"❌ Could not load config {args.config}: {e}")
        sys.exit(2)

    if args.refresh_hz <= 0:
        parser.error("--refresh-hz must be positive")

    looping = config.playback.looping and not args.no_loop
    failures = inspect_files(
        [Path(p) for p in args.files],
        config,
        Path(args.export_dir) if args.export_dir else None,
        args.play,
        args.refresh_hz,
        looping,
    )
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
