#!/usr/bin/env python
"""
Command-line interface for the particlemorph camera preview.

This script provides a CLI wrapper around the run_particlemorph function, allowing
the tracker and the normalization parameters to be controlled via command-line
arguments.

Examples:
    # Run with default settings (face tracking: blink = tension, nose = position)
    python particlemorph_cli.py

    # Track a hand instead (fist = tension, palm = position)
    python particlemorph_cli.py --tracker hand --model-path hand_landmarker.task

    # Keep the last position when tracking is lost, and print every frame's signal
    python particlemorph_cli.py --loss-policy hold --log-signal

    # Longer activation delay, binary tension
    python particlemorph_cli.py --activation-delay 1.0 --tension-policy binary

    # See the normalizer presets
    python particlemorph_cli.py --list-presets
"""

from particlemorph.script_utils import dispatched_particlemorph_cli

if __name__ == "__main__":
    dispatched_particlemorph_cli()
