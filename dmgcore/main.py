"""Command-line entry point: load a cartridge image and run the CPU."""

from __future__ import annotations

import sys
import time
from collections.abc import Sequence
from pathlib import Path

from .cpu import CPU
from .errors import EmulatorError
from .memory import MAX_ROM_SIZE

CYCLES_PER_FRAME = 10
FPS = 60
DEFAULT_FRAMES = 10


def load_rom(path: str | Path) -> bytes:
    """Read a cartridge image, keeping at most the addressable ROM size."""
    with open(path, "rb") as handle:
        return handle.read(MAX_ROM_SIZE)


def run(
    cpu: CPU,
    frames: int = DEFAULT_FRAMES,
    cycles_per_frame: int = CYCLES_PER_FRAME,
    fps: int = FPS,
) -> int:
    """Run ``frames`` frames, pacing each to ``fps``; return the cycles executed."""
    frame_duration = (1000 // fps) / 1000
    total = 0
    for _ in range(frames):
        start = time.monotonic()
        cycles = 0
        while cycles < cycles_per_frame:
            cycles += cpu.step()
        total += cycles
        elapsed = time.monotonic() - start
        if elapsed < frame_duration:
            time.sleep(frame_duration - elapsed)
    return total


def main(argv: Sequence[str] | None = None) -> int:
    """Run the emulator on the ROM named on the command line."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print("usage: dmgcore <Game Boy executable file name>", file=sys.stderr)
        return 1
    print("loading rom")
    try:
        cpu = CPU(load_rom(args[0]))
        print("starting")
        run(cpu)
    except OSError as exc:
        print(f"cannot read ROM: {exc}", file=sys.stderr)
        return 1
    except EmulatorError as exc:
        print(f"emulation stopped: {exc}", file=sys.stderr)
        return 1
    return 0